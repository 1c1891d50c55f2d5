"""
**Error types of the EVF package**

Every failure of the pipeline is raised immediately, there is no partial
result. The classes also derive from `ValueError`, so callers that only
guard against bad values keep working.

- `EVFError` - base class of all package errors
- `InvalidArgumentError` - bad window size, empty / wrong-rank / non-finite image, unknown option
- `OutOfRangeError` - discretized intensities outside [0, 255]
"""



class EVFError(Exception):
    """Base class for all errors raised by `img_evf`."""



class InvalidArgumentError(EVFError, ValueError):
    """
    An argument does not satisfy the input contract.

    Raised for a non-positive or non-integral neighborhood size, an empty
    image, an image with the wrong rank or dtype, non-finite values or an
    unknown option string.
    """



class OutOfRangeError(InvalidArgumentError):
    """
    Discrete intensities lie outside of [0, 255].

    The histogram kernels only know 256 bins, so such values are rejected
    instead of being clamped.
    """
