"""FastAPI gateway exposing the VShield gate over HTTP."""
