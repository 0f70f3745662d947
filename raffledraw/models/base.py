from sqlalchemy.orm import DeclarativeBase

from raffledraw.db.metadata import metadata_obj


class Base(DeclarativeBase):
    """Declarative base for every raffle store table.

    Shares :data:`~raffledraw.db.metadata.metadata_obj` so constraint names
    follow the project naming convention in models and migrations alike.
    """

    metadata = metadata_obj
