"""
cfglearn package exports.

Only expose the recogniser and the k-bounded learner; teachers, the learning
rig and grammar utilities are imported from their modules.
"""

from .earley import EarleyRecognizer, ParseTree
from .k_bounded import learn

__all__ = ["EarleyRecognizer", "ParseTree", "learn"]
