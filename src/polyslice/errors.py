"""Exception hierarchy for slicing failures."""


class SliceError(Exception):
    """Base exception for geometry-core errors."""
    pass


class DegenerateRingError(SliceError):
    """Fewer than 3 usable vertices after de-duplication or simplification."""
    pass


class NoIntersectionError(SliceError):
    """Cut attempted on a ring lying entirely on one side of the line."""
    pass


class InsufficientPointsError(SliceError):
    """Silhouette extraction was given fewer than 3 unique points."""
    pass


class SegmentOutOfRangeError(SliceError):
    """Intersection lies on the infinite line but outside the drawn segment."""
    pass
