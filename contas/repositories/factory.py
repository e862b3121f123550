from contas.repositories.base import CollectionRepository


def get_collection_repository() -> CollectionRepository:
    from contas.db import get_connection
    from contas.repositories.sqlalchemy import SQLAlchemyCollectionRepository

    return SQLAlchemyCollectionRepository(get_connection())
