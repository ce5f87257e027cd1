# saas_starter/__init__.py
__version__ = "0.1.0"
