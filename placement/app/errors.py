class NotFoundError(RuntimeError):
    pass


class StoragePlacementError(RuntimeError):
    pass


class PlacementPrerequisiteError(StoragePlacementError):
    pass


class PlacementRequestError(StoragePlacementError):
    pass


class NoRecommendationError(StoragePlacementError):
    pass


class DatastoreResolutionError(StoragePlacementError):
    pass
