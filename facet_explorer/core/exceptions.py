class FacetExplorerError(Exception):
    """Base exception for all facet_explorer errors"""
    pass

class ConfigError(FacetExplorerError):
    """Invalid or inconsistent session configuration"""
    pass

class FacetLookupError(FacetExplorerError, KeyError):
    """
    A partition or dataview refers to a facet that does not exist
    (renamed, removed, or never scanned)
    """
    pass

class UnknownPartitionTypeError(FacetExplorerError, ValueError):
    """Partition or facet type outside of the supported set"""
    pass

class DriverError(FacetExplorerError):
    """A driver operation could not be carried out"""
    pass

class NotConnectedError(DriverError):
    """Server driver used, or request abandoned, while disconnected"""
    pass
