"""repokit — generic async repository, unit of work and paging on SQLAlchemy."""
