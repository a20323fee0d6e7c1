from .client import get_db, get_client, close_client, upstream_errors
