"""Document store (SQLAlchemy): cuentas y metadata de proyectos."""
