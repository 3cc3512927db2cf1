# Custom exceptions to be used throughout the project.

class FetchError(Exception):
    """
    To be raised when a data source cannot deliver usable data.
    May be raised under the following circumstances:
        1. The Google API returned a non-2xx response
        2. The credentials could not be loaded or refreshed
        3. The payload did not have the expected structure
    """
    def __init__(self, message="An error occurred while fetching data.", *args):
        super().__init__(message, *args)
        self.message = message


class EmptyDataError(Exception):
    """
    To be raised when there is nothing to render yet, e.g. before the first refresh cycle has completed.
    Distinct from FetchError: this is not a failure, there is simply no data.
    """
    def __init__(self, message="No data available.", *args):
        super().__init__(message, *args)
        self.message = message
