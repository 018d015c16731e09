"""HTTP layer: the site blueprint lives in routes.py."""
