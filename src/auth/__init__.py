"""Identity: JWT verification and role checks."""
