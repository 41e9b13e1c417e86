"""FastAPI application and HTTP surface for the session store."""
