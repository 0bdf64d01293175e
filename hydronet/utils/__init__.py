"""
The hydronet.utils package contains helper functions and classes.
"""
