"""
**Image Entropy Visibility (img_evf)**

Local-entropy visibility maps of images.

Submodules:
- `entropy` - sliding-window histogram entropy filter (numba/numpy, joblib bands)
- `img` - image IO, grayscale, discretization, rescale and cast helpers
- `visibility` - the `evf()` pipeline
- `exceptions` - error types

Example:
```python
import img_evf as evf

img = evf.img.open("scene.png")
evf_map = evf.evf(img, n_hood=9)
```
"""
from . import exceptions
from . import img
from . import entropy
from . import visibility

from .exceptions import EVFError, InvalidArgumentError, OutOfRangeError
from .visibility import evf, evf_map_to_img

__version__ = "0.1.0"
