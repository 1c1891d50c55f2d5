"""
**Entropy Visibility Function (EVF) Maps**

An EVF map shows how much local detail an image has. Each pixel holds the
entropy of the intensity histogram in its neighborhood, rescaled so that the
lowest entropy of the image becomes 0 and the highest becomes 1.

Pipeline:
1. Validate the image (numeric, real, finite, non-empty, 2D or 3D)
2. Convert RGB(A) to grayscale
3. Discretize to uint8 so every value maps directly to a histogram bin
4. Local entropy with a `n_hood x n_hood` window (`entropy.entropy_filter`)
5. Rescale to [0, 1]
6. Cast to float32, or float64 for float64 input

Example:
```python
img = evf.img.open("cameraman.tif")
evf_map = evf.evf(img)              # n_hood = 9
evf_map = evf.evf(img, n_hood=15, parallelization=-1)
evf.img.save("cameraman_evf.png", evf.evf_map_to_img(evf_map))
```

Reference:
Gonzalez, R. C., R. E. Woods, and S. L. Eddins. Digital Image Processing
Using MATLAB. Prentice Hall, 2003, Chapter 11.
"""



# ---------------
# >>> Imports <<<
# ---------------
import logging

import numpy as np

from .entropy import DEFAULT_N_HOOD, entropy_filter, validate_n_hood
from .exceptions import InvalidArgumentError
from .img import to_gray, to_uint8, rescale, cast_like


logger = logging.getLogger(__name__)



# ---------------
# >>> Helper <<<
# ---------------

def validate_image(img):
    """
    Check a caller image before it enters the pipeline.

    Parameters:
    - img (array-like): <br>
        Image of shape (H, W) or (H, W, C) with a real numeric dtype.

    Returns:
    - np.ndarray: <br>
        The image as numpy array (no copy for arrays).
    """
    img = np.asarray(img)

    # kinds: i/u -> integers, f -> floats (bool, complex and objects are rejected)
    if img.dtype.kind not in "iuf":
        raise InvalidArgumentError(f"evf: unsupported image dtype {img.dtype}, expected a real numeric class")
    if img.ndim not in (2, 3):
        raise InvalidArgumentError(f"evf: expected (H,W) or (H,W,C) image, got shape {img.shape}")
    if img.size == 0:
        raise InvalidArgumentError(f"evf: image is empty, got shape {img.shape}")
    if img.dtype.kind == "f" and not np.all(np.isfinite(img)):
        raise InvalidArgumentError("evf: image contains NaN or Inf values")

    return img



def evf_map_to_img(evf_map):
    """
    Convert an EVF map to a uint8 visualization image.

    Values are clipped to [0, 1] and scaled to [0, 255].

    Parameters:
    - evf_map (np.ndarray): <br>
        EVF map with values in [0, 1].

    Returns:
    - np.ndarray: <br>
        A uint8 image array with values in [0, 255].
    """
    vis = np.clip(np.asarray(evf_map, dtype=np.float64), 0.0, 1.0)
    return np.floor(vis * 255 + 0.5).astype(np.uint8)



# ------------
# >>> Main <<<
# ------------

def evf(img, n_hood=DEFAULT_N_HOOD, **filter_kwargs):
    """
    Generate the entropy visibility function map of an image.

    Parameters:
    - img (np.ndarray): <br>
        Grayscale (H, W) or color (H, W, C) image. Supported classes are
        float16/32/64 and all signed/unsigned integers. Integer images use
        their full dtype range, float images are expected in [0, 1].
    - n_hood (int, optional): <br>
        Side length of the square neighborhood (default: 9).
    - **filter_kwargs: <br>
        Forwarded to `entropy.entropy_filter` (`method`,
        `use_numba_compilation`, `parallelization`, `parallelization_method`).

    Returns:
    - np.ndarray: <br>
        EVF map (H, W) with values in [0, 1]. 1 marks the areas with the
        highest entropy. float64 for float64 input, float32 otherwise.
    """
    img = validate_image(img)
    n_hood = validate_n_hood(n_hood)

    gray = to_gray(img)
    discrete = to_uint8(gray)
    logger.debug("evf: %s %s -> gray uint8 %s", img.dtype, img.shape, discrete.shape)

    entropy_map = entropy_filter(discrete, n_hood=n_hood, **filter_kwargs)

    return cast_like(rescale(entropy_map), img)
