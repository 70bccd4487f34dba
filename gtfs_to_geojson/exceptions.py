class GTFSToGeoJSONError(Exception):
    """Base class of the errors raised while building GeoJSON"""


class InvalidFormatError(GTFSToGeoJSONError, ValueError):
    def __init__(self, output_format):
        self.output_format = output_format
        super().__init__(f"Invalid `outputFormat`={output_format} supplied in config")


class InvalidScopeError(GTFSToGeoJSONError, ValueError):
    def __init__(self, output_type):
        self.output_type = output_type
        super().__init__(f"Invalid `outputType`={output_type} supplied in config")


class FeedImportError(GTFSToGeoJSONError):
    """A GTFS feed could not be located, downloaded or read"""


class FeedDownloadError(FeedImportError):
    pass


class StoreNotOpenError(GTFSToGeoJSONError):
    pass


class UnknownAgencyError(GTFSToGeoJSONError):
    pass
