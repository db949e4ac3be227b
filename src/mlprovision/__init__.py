"""
mlprovision - Machine Learning Environment Provisioning
=======================================================

Version: 0.1.0
"""

__version__ = "0.1.0"

__all__ = [
    "__version__",
]
