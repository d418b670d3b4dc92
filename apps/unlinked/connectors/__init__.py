from .mongo_connector import MongoConnector

__all__ = ["MongoConnector"]
