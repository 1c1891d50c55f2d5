import numpy as np
import pytest

import img_evf as evf
from img_evf.entropy import entropy_filter
from img_evf.exceptions import InvalidArgumentError
from img_evf.img import rescale, to_gray, to_uint8
from img_evf.visibility import validate_image



@pytest.fixture
def rgb_u8(rng):
    img = np.zeros((20, 24, 3), dtype=np.uint8)
    img[:, :12] = (30, 60, 90)
    img[:, 12:] = rng.integers(0, 256, size=(20, 12, 3), dtype=np.uint8)
    return img



def test_evf_range_and_shape(texture_u8):
    out = evf.evf(texture_u8)
    assert out.shape == texture_u8.shape
    assert out.dtype == np.float32
    assert out.min() == 0
    assert out.max() == 1



def test_evf_is_rescaled_entropy(texture_u8):
    expected = rescale(entropy_filter(texture_u8, 9)).astype(np.float32)
    np.testing.assert_array_equal(evf.evf(texture_u8, 9), expected)



def test_evf_high_on_texture_low_on_flat(texture_u8):
    out = evf.evf(texture_u8, 5)
    assert out[:, :12].max() == 0
    assert out[2:-2, 20:-2].min() > 0.5



@pytest.mark.parametrize("dtype, expected", [
    (np.uint8, np.float32),
    (np.uint16, np.float32),
    (np.int16, np.float32),
    (np.int64, np.float32),
    (np.float16, np.float32),
    (np.float32, np.float32),
    (np.float64, np.float64),
])
def test_evf_output_class(dtype, expected, rng):
    if np.issubdtype(dtype, np.integer):
        info = np.iinfo(dtype)
        img = rng.integers(info.min, info.max, size=(8, 8), dtype=dtype, endpoint=True)
    else:
        img = rng.random((8, 8)).astype(dtype)

    out = evf.evf(img, 3)

    assert out.dtype == expected
    assert np.all((out >= 0) & (out <= 1))



def test_evf_constant_image_is_zero():
    out = evf.evf(np.full((10, 10), 0.25))
    assert out.dtype == np.float64
    np.testing.assert_array_equal(out, 0)



def test_evf_color_uses_luma(rgb_u8):
    expected = evf.evf(to_gray(rgb_u8), 7)
    np.testing.assert_array_equal(evf.evf(rgb_u8, 7), expected)



def test_evf_uint16_matches_discretized_uint8(rng):
    img = rng.integers(0, 65536, size=(12, 12), dtype=np.uint16)
    np.testing.assert_array_equal(evf.evf(img, 5), evf.evf(to_uint8(img), 5))



def test_evf_forwards_filter_options(texture_u8):
    default = evf.evf(texture_u8, 6)
    naive = evf.evf(texture_u8, 6, method="naive", parallelization=2)
    np.testing.assert_array_equal(naive, default)

    numpy_path = evf.evf(texture_u8, 6, use_numba_compilation=False)
    np.testing.assert_allclose(numpy_path, default, atol=1e-6)



def test_evf_accepts_nested_lists():
    out = evf.evf([[0.0, 0.0, 1.0], [0.0, 1.0, 1.0], [1.0, 1.0, 1.0]], 3)
    assert out.shape == (3, 3)
    assert out.dtype == np.float64
    assert out.max() == 1



@pytest.mark.parametrize("img", [
    np.zeros((0, 5)),
    np.zeros(5),
    np.zeros((2, 2, 3, 1)),
    np.array([[True, False]]),
    np.array([[1 + 1j, 0]]),
    np.array([[0.0, np.inf]]),
    np.array([[np.nan, 0.5]], dtype=np.float32),
])
def test_validate_image_rejects(img):
    with pytest.raises(InvalidArgumentError):
        validate_image(img)
    with pytest.raises(ValueError):
        evf.evf(img)



@pytest.mark.parametrize("n_hood", [0, -1, 1.5, False])
def test_evf_rejects_bad_n_hood(n_hood, texture_u8):
    with pytest.raises(InvalidArgumentError):
        evf.evf(texture_u8, n_hood)



def test_evf_map_to_img():
    vis = evf.evf_map_to_img(np.array([[0.0, 0.5, 1.0, 1.2]]))
    assert vis.dtype == np.uint8
    np.testing.assert_array_equal(vis, [[0, 128, 255, 255]])
