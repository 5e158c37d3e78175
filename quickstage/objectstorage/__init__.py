from quickstage.objectstorage.store import ObjectNotFound, ObjectStore, S3ObjectStore, StoredObject

__all__ = ["ObjectNotFound", "ObjectStore", "S3ObjectStore", "StoredObject"]
