# -*- coding: utf-8 -*-
"""Define project metadata
"""

__title__ = "hashstorage"
__summary__ = "Content-addressed storage for file, in-memory and URL resources."
__url__ = ""

__version__ = "0.1.0"

# fs imports pkg_resources at import time.
__install_requires__ = ["fs>=2.4", "requests>=2.20", "setuptools<81"]
__tests_require__ = ["pytest"]

__author__ = "hashstorage developers"
__email__ = ""

__license__ = "MIT License"
