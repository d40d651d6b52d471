"""
Database schema, migrations, and demo-data seeding.

Runtime DB access lives in the API service. This package is for repo-level DB operations:
- Table definitions shared by the seeders and the API
- Alembic migrations config
- Seeder pipeline and its CLI (seed / admin / clear / reset)
"""
