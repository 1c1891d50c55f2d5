"""
**Local Entropy Filter (Sliding-Window Histograms)**

This module computes the local Shannon entropy of a discretized (uint8) image.
For every pixel the 256-bin histogram of the intensities inside a square
`n_hood x n_hood` neighborhood is built and turned into entropy in bits:

    H = - sum_v p(v) * log2(p(v)),   p(v) = count(v) / n_hood^2

Empty bins contribute 0. The result lies in [0, 8]: 0 for a window of one
single intensity and 8 for a window that holds all 256 intensities equally
often.

Image borders are handled with symmetric (mirror) padding, the edge sample
is repeated (`dcba|abcd|dcba`). The reflection is applied as often as needed,
so windows larger than the image are fine.

As ASCII model:
```text
        ┌─────────────────────────────┐
        │   uint8 image (H, W)        │
        └──────────────┬──────────────┘
                       v
        ┌─────────────────────────────┐
        │  Symmetric padding          │
        │  (n-1)//2 before, n//2 after│
        └──────────────┬──────────────┘
                       v
        ┌─────────────────────────────┐
        │  Split into row bands       │
        │  (joblib, optional)         │
        └──────────────┬──────────────┘
                       v
        ┌─────────────────────────────┐
        │  Per row: histogram of the  │
        │  first window, then slide   │
        │  right column by column     │
        └──────────────┬──────────────┘
                       v
        ┌─────────────────────────────┐
        │  Entropy via -p*log2(p)     │
        │  lookup table               │
        └──────────────┬──────────────┘
                       v
        ┌─────────────────────────────┐
        │  Entropy map (H, W) float64 │
        └─────────────────────────────┘
```

Strategies:
- `"incremental"` (default): the histogram is kept while sliding along a row,
  only the leaving and the entering column are updated -> O(H*W*n_hood)
- `"naive"`: the histogram is rebuilt for every pixel -> O(H*W*n_hood^2)

Both strategies read their entropy terms from one shared table and sum them in
bin order, so the numba versions return bit-identical maps.

Numba/parallelization notes:<br>
The kernels are compiled with `nogil=True` and work on a band of output rows.
Each band owns its histogram and writes to its own output rows, the padded
image is only read. Bands can therefore run in joblib threads without locks.

Example:
```python
entropy_map = evf.entropy.entropy_filter(gray_u8, n_hood=9)
```

Dependencies:
- numpy
- numba
- joblib

Public API:
- entropy_filter(...)
- symmetric_pad(...)
- pad_widths(...)
- build_plogp_table(...)
- histogram_entropy(...)
- window_entropy(...)
- validate_n_hood(...)
- validate_discrete_image(...)
"""



# ---------------
# >>> Imports <<<
# ---------------
from __future__ import annotations

import logging
import numbers
from typing import List, Tuple

import numpy as np

# performance optimization
from joblib import Parallel, delayed, cpu_count
import numba

from .exceptions import InvalidArgumentError, OutOfRangeError



# ---------------
# >>> Defaults <<<
# ---------------
N_BINS = 256
DEFAULT_N_HOOD = 9
DEFAULT_METHOD = "incremental"
METHODS = ("incremental", "naive")
PARALLELIZATION_METHODS = ("threads", "processes")

logger = logging.getLogger(__name__)



# ------------------
# >>> Validation <<<
# ------------------

def validate_n_hood(n_hood) -> int:
    """
    Check and normalize the neighborhood size.

    Integral floats (e.g. `9.0`) are accepted, booleans are not.

    Parameters:
    - n_hood (int): <br>
        Side length of the square window.

    Returns:
    - int: <br>
        The window side as Python int (>= 1).
    """
    if isinstance(n_hood, (bool, np.bool_)):
        raise InvalidArgumentError(f"n_hood must be a positive integer, got {n_hood!r}")

    if isinstance(n_hood, numbers.Integral):
        n = int(n_hood)
    elif isinstance(n_hood, numbers.Real) and np.isfinite(n_hood) and float(n_hood).is_integer():
        n = int(n_hood)
    else:
        raise InvalidArgumentError(f"n_hood must be a positive integer, got {n_hood!r}")

    if n < 1:
        raise InvalidArgumentError(f"n_hood must be a positive integer, got {n}")
    return n



def _check_discrete_values(values: np.ndarray, func_name: str) -> np.ndarray:
    # uint8 is in range by construction
    if values.dtype == np.uint8:
        return values

    if values.dtype.kind not in "iuf":
        raise InvalidArgumentError(f"{func_name}: unsupported dtype {values.dtype}, expected integer intensities")

    if values.size == 0:
        return values.astype(np.uint8)

    if values.dtype.kind == "f":
        if not np.all(np.isfinite(values)):
            raise InvalidArgumentError(f"{func_name}: image contains NaN or Inf values")
        if not np.all(values == np.floor(values)):
            raise InvalidArgumentError(f"{func_name}: image contains non-integral values, discretize to uint8 first")

    vmin = values.min()
    vmax = values.max()
    if vmin < 0 or vmax > N_BINS - 1:
        raise OutOfRangeError(
            f"{func_name}: intensities must lie in [0, {N_BINS - 1}], got [{vmin}, {vmax}]"
        )

    return values.astype(np.uint8)



def validate_discrete_image(image) -> np.ndarray:
    """
    Check the input of the entropy filter and return it as uint8.

    The image must be 2D, non-empty and hold integral values in [0, 255].
    Integer and integral float arrays are converted, uint8 arrays are passed
    through without a copy.

    Parameters:
    - image (np.ndarray): <br>
        2D array of discrete intensities.

    Returns:
    - np.ndarray: <br>
        The image as uint8 array of shape (H, W).
    """
    image = np.asarray(image)

    if image.ndim != 2:
        raise InvalidArgumentError(
            f"entropy_filter: expected 2D image (H,W), got ndim={image.ndim}. Convert RGB first."
        )
    if image.size == 0:
        raise InvalidArgumentError(f"entropy_filter: image is empty, got shape {image.shape}")

    return _check_discrete_values(image, "entropy_filter")



# ---------------
# >>> Padding <<<
# ---------------

def pad_widths(n_hood: int) -> Tuple[int, int]:
    """
    Get the padding (before, after) for a window of side `n_hood`.

    For odd windows both sides are equal. For even windows the extra
    row/column lies after the center (bottom/right), so the window of pixel
    r covers the rows `r - (n_hood-1)//2 ... r + n_hood//2`.

    Parameters:
    - n_hood (int): <br>
        Side length of the square window.

    Returns:
    - Tuple[int, int]: <br>
        Amount of padded samples before and after the image on each axis.
    """
    return (n_hood - 1) // 2, n_hood // 2



def symmetric_pad(image: np.ndarray, n_hood: int) -> np.ndarray:
    """
    Pad an image with mirrored borders for a window of side `n_hood`.

    The edge sample is part of the reflection (`dcba|abcd|dcba`). If the
    padding is wider than the image, the reflection is repeated, which
    results in a periodic mirror extension of period 2*size.

    Parameters:
    - image (np.ndarray): <br>
        2D image (H, W).
    - n_hood (int): <br>
        Side length of the square window.

    Returns:
    - np.ndarray: <br>
        Padded image of shape (H + n_hood - 1, W + n_hood - 1), same dtype.
    """
    before, after = pad_widths(n_hood)
    # numpy repeats the reflection for pad widths larger than the axis
    return np.pad(image, ((before, after), (before, after)), mode="symmetric")



# ---------------
# >>> Entropy <<<
# ---------------

def build_plogp_table(n_hood: int) -> np.ndarray:
    """
    Precompute the entropy term of every possible bin count.

    `table[c] = -(c/N) * log2(c/N)` with `N = n_hood^2` and `table[0] = 0`.
    The entropy of a window is then the sum of `table[count]` over all bins.

    Parameters:
    - n_hood (int): <br>
        Side length of the square window.

    Returns:
    - np.ndarray: <br>
        float64 array of length `n_hood^2 + 1`.
    """
    total = n_hood * n_hood
    p = np.arange(1, total + 1, dtype=np.float64) / total

    table = np.zeros(total + 1, dtype=np.float64)
    table[1:] = -p * np.log2(p)
    return table



def histogram_entropy(counts) -> float:
    """
    Compute the Shannon entropy (bits) of a histogram.

    Parameters:
    - counts (array-like): <br>
        Non-negative bin counts.

    Returns:
    - float: <br>
        Entropy in bits, 0 if only one bin is occupied.
    """
    counts = np.asarray(counts, dtype=np.float64)
    if np.any(counts < 0):
        raise InvalidArgumentError("histogram_entropy: counts must be non-negative")

    total = counts.sum()
    if total <= 0:
        raise InvalidArgumentError("histogram_entropy: histogram is empty")

    p = counts[counts > 0] / total
    return float(-np.sum(p * np.log2(p)))



def window_entropy(window) -> float:
    """
    Compute the Shannon entropy (bits) of the values inside one window.

    Only the multiset of values matters, their arrangement does not.

    Parameters:
    - window (array-like): <br>
        Discrete intensities in [0, 255], any shape.

    Returns:
    - float: <br>
        Entropy in bits.
    """
    values = _check_discrete_values(np.asarray(window).ravel(), "window_entropy")
    if values.size == 0:
        raise InvalidArgumentError("window_entropy: window is empty")

    return histogram_entropy(np.bincount(values, minlength=N_BINS))



# --------------------------
# >>> Numba row kernels <<<
# --------------------------
# no fastmath here: the summation order of the entropy terms has to stay fixed

@numba.njit(cache=True, nogil=True)
def _window_histogram_numba(padded, y0, x0, n_hood, hist):
    hist[:] = 0
    for yy in range(y0, y0 + n_hood):
        for xx in range(x0, x0 + n_hood):
            hist[padded[yy, xx]] += 1



@numba.njit(cache=True, nogil=True)
def _histogram_entropy_numba(hist, plogp_table):
    e = 0.0
    for v in range(hist.shape[0]):
        e += plogp_table[hist[v]]
    return e



@numba.njit(cache=True, nogil=True)
def entropy_rows_naive_kernel(padded, n_hood, row_start, row_end, plogp_table, out):
    """
    Entropy of the output rows [row_start, row_end) with a fresh histogram per pixel.

    Parameters:
    - padded (np.ndarray): <br>
        Symmetrically padded uint8 image (H + n_hood - 1, W + n_hood - 1).
    - n_hood (int): <br>
        Side length of the window.
    - row_start (int): <br>
        First output row of the band.
    - row_end (int): <br>
        Output row after the last one of the band.
    - plogp_table (np.ndarray): <br>
        Entropy term per bin count, see `build_plogp_table`.
    - out (np.ndarray): <br>
        float64 array (row_end - row_start, W) that receives the result.
    """
    W = out.shape[1]
    hist = np.zeros(256, dtype=np.int64)

    for r in range(row_start, row_end):
        for c in range(W):
            # output (r, c) -> window with top-left corner (r, c) in padded space
            _window_histogram_numba(padded, r, c, n_hood, hist)
            out[r - row_start, c] = _histogram_entropy_numba(hist, plogp_table)



@numba.njit(cache=True, nogil=True)
def entropy_rows_incremental_kernel(padded, n_hood, row_start, row_end, plogp_table, out):
    """
    Entropy of the output rows [row_start, row_end) with a sliding histogram.

    The histogram of the first window in a row is built once. Moving one
    column to the right removes the leaving column and adds the entering one,
    which costs 2*n_hood updates instead of n_hood^2.

    Parameters are the same as for `entropy_rows_naive_kernel`.
    """
    W = out.shape[1]
    hist = np.zeros(256, dtype=np.int64)

    for r in range(row_start, row_end):
        _window_histogram_numba(padded, r, 0, n_hood, hist)
        out[r - row_start, 0] = _histogram_entropy_numba(hist, plogp_table)

        for c in range(1, W):
            leaving = c - 1
            entering = c - 1 + n_hood
            for yy in range(r, r + n_hood):
                hist[padded[yy, leaving]] -= 1
                hist[padded[yy, entering]] += 1

            out[r - row_start, c] = _histogram_entropy_numba(hist, plogp_table)



# -----------------------------
# >>> Numpy reference rows <<<
# -----------------------------

def _entropy_rows_numpy(padded, n_hood, row_start, row_end, plogp_table, method):
    """
    Numpy version of the row kernels (no compilation needed).

    - naive: bincount over all windows of the row
    - incremental: per-column histograms of the row band, window histograms
      as differences of their cumulative sum along the columns
    """
    Wp = padded.shape[1]
    W = Wp - n_hood + 1
    out = np.empty((row_end - row_start, W), dtype=np.float64)

    for r in range(row_start, row_end):
        band = padded[r:r + n_hood]

        if method == "naive":
            windows = np.lib.stride_tricks.sliding_window_view(band, (n_hood, n_hood))[0]
            windows = windows.reshape(W, n_hood * n_hood).astype(np.int64)
            # shift every window into its own block of 256 bins
            windows += (np.arange(W, dtype=np.int64) * N_BINS)[:, None]
            counts = np.bincount(windows.ravel(), minlength=W * N_BINS).reshape(W, N_BINS)
        else:
            cols = band.astype(np.int64) + (np.arange(Wp, dtype=np.int64) * N_BINS)[None, :]
            col_hist = np.bincount(cols.ravel(), minlength=Wp * N_BINS).reshape(Wp, N_BINS)

            cum_hist = np.zeros((Wp + 1, N_BINS), dtype=np.int64)
            np.cumsum(col_hist, axis=0, out=cum_hist[1:])
            counts = cum_hist[n_hood:] - cum_hist[:-n_hood]

        out[r - row_start] = plogp_table[counts].sum(axis=1)

    return out



# ---------------------
# >>> Band handling <<<
# ---------------------

def _entropy_band(padded, n_hood, row_start, row_end, plogp_table, method, use_numba_compilation):
    if not use_numba_compilation:
        return _entropy_rows_numpy(padded, n_hood, row_start, row_end, plogp_table, method)

    W = padded.shape[1] - n_hood + 1
    out = np.empty((row_end - row_start, W), dtype=np.float64)

    if method == "naive":
        entropy_rows_naive_kernel(padded, n_hood, row_start, row_end, plogp_table, out)
    else:
        entropy_rows_incremental_kernel(padded, n_hood, row_start, row_end, plogp_table, out)
    return out



def split_rows(n_rows: int, n_bands: int) -> List[Tuple[int, int]]:
    """
    Split `n_rows` rows into at most `n_bands` contiguous (start, end) ranges.

    The ranges cover every row exactly once and differ in size by at most 1.
    """
    n_bands = max(1, min(n_rows, n_bands))
    base, rest = divmod(n_rows, n_bands)

    bands = []
    start = 0
    for i in range(n_bands):
        end = start + base + (1 if i < rest else 0)
        bands.append((start, end))
        start = end
    return bands



def _n_workers(parallelization: int) -> int:
    # joblib convention: -1 -> all cores, -2 -> all but one, ...
    if parallelization < 0:
        return max(1, cpu_count() + 1 + parallelization)
    return parallelization



# ------------
# >>> Main <<<
# ------------

def entropy_filter(
    image,
    n_hood=DEFAULT_N_HOOD,
    method:str=DEFAULT_METHOD,
    use_numba_compilation:bool=True,
    parallelization:int=0,
    parallelization_method:str="threads"
) -> np.ndarray:
    """
    Compute the local Shannon entropy of every pixel of a discretized image.

    The function:
    1. Validates the window size and the image (2D, non-empty, values in [0, 255])
    2. Pads the image symmetrically (`(n_hood-1)//2` before, `n_hood//2` after)
    3. Precomputes the -p*log2(p) table for all bin counts of one window
    4. Computes the entropy row by row, optionally split into row bands that
       are processed by joblib workers
    5. Stitches the bands back together

    Parameters:
    - image (np.ndarray): <br>
        2D array (H, W) of discrete intensities in [0, 255]. uint8 is used as
        is, other integer or integral float arrays are converted.
    - n_hood (int): <br>
        Side length of the square neighborhood (default 9). Even sizes place
        the extra row/column after the center.
    - method (str): <br>
        `"incremental"` (sliding histogram, default) or `"naive"` (histogram
        rebuilt per pixel). Both give the same map.
    - use_numba_compilation (bool): <br>
        Whether to use the compiled (to machine code) kernels. If False a
        numpy implementation is used.
    - parallelization (int): <br>
        The amount of workers for parallelization. 0 for no parallelization,
        -1 for max amount of workers.
    - parallelization_method (str): <br>
        Method to use for parallelization (as soft condition) -> "threads" or
        "processes". The numba kernels release the GIL and always prefer threads.

    Returns:
    - np.ndarray: <br>
        float64 entropy map (H, W) in bits, values in [0, 8].
    """
    n_hood = validate_n_hood(n_hood)
    image = validate_discrete_image(image)

    if method not in METHODS:
        raise InvalidArgumentError(f"entropy_filter: unknown method {method!r}, expected one of {METHODS}")
    if parallelization_method not in PARALLELIZATION_METHODS:
        raise InvalidArgumentError(
            f"entropy_filter: unknown parallelization_method {parallelization_method!r}, "
            f"expected one of {PARALLELIZATION_METHODS}"
        )
    if isinstance(parallelization, bool) or not isinstance(parallelization, numbers.Integral):
        raise InvalidArgumentError(f"entropy_filter: parallelization must be an int, got {parallelization!r}")

    H, W = image.shape
    padded = symmetric_pad(image, n_hood)
    plogp_table = build_plogp_table(n_hood)

    logger.debug("entropy_filter: image=%dx%d n_hood=%d method=%s numba=%s",
                 H, W, n_hood, method, use_numba_compilation)

    if parallelization == 0:
        return _entropy_band(padded, n_hood, 0, H, plogp_table, method, use_numba_compilation)

    bands = split_rows(H, _n_workers(int(parallelization)))
    logger.debug("entropy_filter: %d row bands on %s workers", len(bands), parallelization)

    results = Parallel(n_jobs=int(parallelization),
                       prefer="threads" if use_numba_compilation else parallelization_method
                       )(
                            delayed(_entropy_band)(padded, n_hood, start, end, plogp_table,
                                                   method, use_numba_compilation)
                            for start, end in bands
                        )

    entropy_map = np.empty((H, W), dtype=np.float64)
    for (start, end), band_out in zip(bands, results):
        entropy_map[start:end] = band_out
    return entropy_map
