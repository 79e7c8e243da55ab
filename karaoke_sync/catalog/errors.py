class CatalogError(RuntimeError):
    pass
