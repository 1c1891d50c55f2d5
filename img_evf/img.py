"""
**Image Helpers: IO, Grayscale, Discretization and Rescaling**

The steps around the entropy filter live here:

1. `to_gray()` - RGB(A) to luma grayscale, single channel images pass through
2. `to_uint8()` - map any supported numeric class onto 256 discrete levels
3. `rescale()` - linear map of a value range onto [0, 1]
4. `cast_like()` - cast to the float class that belongs to the caller's image

Class handling follows the usual image-class conventions: integer images span
the full range of their dtype, float images are expected in [0, 1] and are
clipped to it before they are discretized.

Dependencies:
- numpy
- cv2 (OpenCV) for reading and writing image files

Functions:
- open(...)  - Load an image file as RGB(A) array.
- save(...)  - Save an array as image file.
- get_width_height(...)  - Get (width, height) of an image.
- to_gray(...)  - Convert an RGB(A) image to grayscale.
- to_float(...)  - Map an image onto [0, 1] floats.
- to_uint8(...)  - Discretize an image onto 0..255.
- float_dtype_like(...)  - Output float class for a given input image.
- rescale(...)  - Min/max normalize onto [0, 1].
- cast_like(...)  - Cast to the float class of an input image.
"""



# ---------------
# >>> Imports <<<
# ---------------
import numpy as np
import cv2

from .exceptions import InvalidArgumentError



# ---------------
# >>> Helper <<<
# ---------------
# ITU-R BT.601 luma weights with the precision used by common image toolboxes
LUMA_WEIGHTS = np.array([0.298936021293775, 0.587043074451121, 0.114020904255103], dtype=np.float64)



def _round_half_up(x):
    return np.floor(x + 0.5)



# --------------
# >>> IO <<<
# --------------

def open(src, should_print=False):
    """
    Load an image file with OpenCV.

    The file is read unchanged (bit depth and channels are kept). Color
    images are converted from OpenCV's BGR(A) order to RGB(A).

    Parameters:
    - src (str or Path): <br>
        Path to the image file.
    - should_print (bool, optional): <br>
        Whether to print shape and dtype of the loaded image (default: False).

    Returns:
    - np.ndarray: <br>
        Image array of shape (H, W) or (H, W, C).
    """
    img = cv2.imread(str(src), cv2.IMREAD_UNCHANGED)
    if img is None:
        raise FileNotFoundError(f"Could not read image file: {src}")

    if img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_BGR2RGB)
    elif img.ndim == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_BGRA2RGBA)

    if should_print:
        print(f"Loaded '{src}': shape={img.shape}, dtype={img.dtype}")

    return img



def save(path, img):
    """
    Save an image array with OpenCV.

    Parameters:
    - path (str or Path): <br>
        Target file, the extension selects the format.
    - img (np.ndarray): <br>
        Image of shape (H, W) or (H, W, 3|4) in RGB(A) order.

    Returns:
    - bool: <br>
        True if OpenCV wrote the file.
    """
    if img.ndim == 3 and img.shape[2] == 3:
        img = cv2.cvtColor(img, cv2.COLOR_RGB2BGR)
    elif img.ndim == 3 and img.shape[2] == 4:
        img = cv2.cvtColor(img, cv2.COLOR_RGBA2BGRA)

    return bool(cv2.imwrite(str(path), img))



def get_width_height(img):
    """Return (width, height) of an image array."""
    return img.shape[1], img.shape[0]



# -----------------------
# >>> Class handling <<<
# -----------------------

def to_gray(img):
    """
    Convert an image to a single channel.

    - (H, W) is returned unchanged
    - (H, W, 1) is squeezed
    - (H, W, 3) RGB is combined with the luma weights
    - (H, W, 4) RGBA drops the alpha channel, then luma

    The weighted sum is computed in float64. Integer images are rounded and
    clipped back to their dtype, float images keep their dtype.

    Parameters:
    - img (np.ndarray): <br>
        Input image.

    Returns:
    - np.ndarray: <br>
        Grayscale image of shape (H, W) with the input dtype.
    """
    if img.ndim == 2:
        return img

    if img.ndim != 3:
        raise InvalidArgumentError(f"to_gray: expected (H,W) or (H,W,C) image, got shape {img.shape}")

    channels = img.shape[2]
    if channels == 1:
        return img[..., 0]
    if channels not in (3, 4):
        raise InvalidArgumentError(f"to_gray: expected 1, 3 or 4 channels, got {channels}")

    gray = img[..., :3].astype(np.float64) @ LUMA_WEIGHTS

    if np.issubdtype(img.dtype, np.integer):
        info = np.iinfo(img.dtype)
        gray = np.clip(_round_half_up(gray), info.min, info.max)

    return gray.astype(img.dtype)



def to_float(img):
    """
    Map an image onto float values in [0, 1].

    Integer images are mapped linearly from their dtype range
    (`(x - min) / (max - min)`), float images are returned as float64
    without clipping.

    Parameters:
    - img (np.ndarray): <br>
        Input image of any supported numeric class.

    Returns:
    - np.ndarray: <br>
        float64 image.
    """
    if np.issubdtype(img.dtype, np.integer):
        info = np.iinfo(img.dtype)
        return (img.astype(np.float64) - float(info.min)) / (float(info.max) - float(info.min))

    if np.issubdtype(img.dtype, np.floating):
        return img.astype(np.float64)

    raise InvalidArgumentError(f"to_float: unsupported dtype {img.dtype}")



def to_uint8(img):
    """
    Discretize an image onto the 256 levels used for histogramming.

    - uint8: unchanged
    - other integers: dtype range mapped onto 0..255
    - floats: clipped to [0, 1], then `floor(x * 255 + 0.5)`

    Parameters:
    - img (np.ndarray): <br>
        Input image of any supported numeric class.

    Returns:
    - np.ndarray: <br>
        uint8 image with the same shape.
    """
    if img.dtype == np.uint8:
        return img

    scaled = np.clip(to_float(img), 0.0, 1.0)
    return _round_half_up(scaled * 255.0).astype(np.uint8)



def float_dtype_like(img):
    """float64 for double precision input, float32 for every other class."""
    if img.dtype == np.float64:
        return np.dtype(np.float64)
    return np.dtype(np.float32)



# -------------------
# >>> Rescaling <<<
# -------------------

def rescale(arr):
    """
    Linearly map the value range of an array onto [0, 1].

    The minimum becomes 0 and the maximum 1. A constant array maps to all
    zeros.

    Parameters:
    - arr (np.ndarray): <br>
        Real-valued array.

    Returns:
    - np.ndarray: <br>
        float64 array of the same shape.
    """
    arr = np.asarray(arr, dtype=np.float64)
    vmin = arr.min()
    vmax = arr.max()

    if vmax <= vmin:
        return np.zeros_like(arr)

    out = (arr - vmin) / (vmax - vmin)
    # guard against 1 + eps from the division
    return np.clip(out, 0.0, 1.0, out=out)



def cast_like(arr, like):
    """
    Cast an array to the float class that belongs to `like`.

    Parameters:
    - arr (np.ndarray): <br>
        Array to cast.
    - like (np.ndarray): <br>
        Caller image that decides the precision (see `float_dtype_like`).

    Returns:
    - np.ndarray: <br>
        `arr` as float32 or float64.
    """
    return np.asarray(arr).astype(float_dtype_like(like), copy=False)
