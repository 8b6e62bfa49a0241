"""pgsculpt: permission-aware semantic IR, join graph and plugin runtime for PostgreSQL code generators."""

__version__ = "0.1.0"
