"""Parser for hypr-style configuration files: values, categories, variables and handlers."""

__version__ = "0.6.0"