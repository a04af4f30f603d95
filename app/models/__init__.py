from app.models.document import collection_table

__all__ = ["collection_table"]
