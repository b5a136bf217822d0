"""Collection, catalog, friends and lending services built on the query client."""
