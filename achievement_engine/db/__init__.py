"""PostgreSQL storage: connection pool, schema, queries, store adapters"""
