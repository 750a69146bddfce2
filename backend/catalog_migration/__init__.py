"""Legacy kmedia catalog to MDB catalog migration."""
