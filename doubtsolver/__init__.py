from .decoder import DecodeError, decode
from .delimiters import normalize
from .models import SolutionDocument
from .segmenter import BlockMath, InlineMath, Prose, Segment, iter_segments, segment

__version__ = "0.1.0"
