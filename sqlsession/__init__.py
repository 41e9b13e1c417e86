"""Cookie-keyed server-side sessions persisted in a single SQL table."""
