"""Infrastructure adapters: Postgres, Redis, auth and caching."""
