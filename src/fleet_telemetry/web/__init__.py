"""HTTP surface and the services behind it."""
