"""HTTP service exposing the registry over a JSON API."""
