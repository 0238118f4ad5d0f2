"""Schema management for SQL-backed providers.

The default provider is in-memory and needs no schema. When a deployment
configures a ``sqlite`` or ``postgresql`` provider, these create and drop
the tables for every ordering aggregate and entity.
"""

from protean.domain import Domain
from sqlalchemy import create_engine

_SQL_PROVIDERS = ("sqlite", "postgresql")


def _sql_providers(domain: Domain):
    for _, provider in domain.providers.items():
        if provider.conn_info["provider"] in _SQL_PROVIDERS:
            yield provider


def setup_db(domain: Domain):
    """Setup database schema"""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])

            # Touching each DAO registers its table on the provider's metadata
            for registry in (domain.registry.aggregates, domain.registry.entities):
                for _, record in registry.items():
                    if record.cls.meta_.provider == provider.name:
                        domain.repository_for(record.cls)._dao  # noqa: B018

            provider._metadata.create_all(engine)


def drop_db(domain: Domain):
    """Drop database schema"""
    with domain.domain_context():
        for provider in _sql_providers(domain):
            engine = create_engine(provider.conn_info["database_uri"])
            provider._metadata.drop_all(engine)
