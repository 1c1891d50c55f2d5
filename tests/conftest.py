import numpy as np
import pytest

from img_evf.entropy import window_entropy



def mirror_index(i, size):
    # infinite symmetric extension: period 2*size, edge sample repeated
    i = i % (2 * size)
    return i if i < size else 2 * size - 1 - i



def reference_entropy_filter(image, n_hood):
    """Per-pixel entropy straight from the definition, no padding array."""
    H, W = image.shape
    before = (n_hood - 1) // 2
    out = np.zeros((H, W), dtype=np.float64)
    for r in range(H):
        rows = [mirror_index(r - before + k, H) for k in range(n_hood)]
        for c in range(W):
            cols = [mirror_index(c - before + k, W) for k in range(n_hood)]
            out[r, c] = window_entropy(image[np.ix_(rows, cols)])
    return out



@pytest.fixture
def rng():
    return np.random.default_rng(1234)



@pytest.fixture
def texture_u8(rng):
    # flat left half, noisy right half
    img = np.full((24, 32), 100, dtype=np.uint8)
    img[:, 16:] = rng.integers(0, 256, size=(24, 16), dtype=np.uint8)
    return img



@pytest.fixture
def reference_filter():
    return reference_entropy_filter



@pytest.fixture
def mirror():
    return mirror_index
