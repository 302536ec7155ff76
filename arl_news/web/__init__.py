"""HTTP surface: JSON API, admin endpoints and server-rendered pages."""
