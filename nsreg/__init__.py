"""nsreg: namespaced registry for authors and packages."""

__version__ = "0.1.0"
