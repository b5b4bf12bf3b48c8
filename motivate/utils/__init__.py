"""Pure helpers shared by schemas and services."""
