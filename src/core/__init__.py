"""Cross-cutting infrastructure: request context, logging, middleware, database."""
