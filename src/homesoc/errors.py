"""Error taxonomy shared across homesoc components."""


class HomeSocError(Exception):
    """Base class for all homesoc errors."""


class CollectionError(HomeSocError):
    """The OS network query could not be executed or its output parsed."""


class PersistError(HomeSocError):
    """A state or cache file could not be written."""


class FetchError(HomeSocError):
    """A threat feed could not be retrieved or decoded.

    Never escapes a feed fetcher; it is recorded in ``SourceResult.error``.
    """


class DispatchError(HomeSocError):
    """An alert could not be delivered to the outbound channel."""
