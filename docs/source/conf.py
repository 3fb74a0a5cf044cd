# Sphinx configuration for the xpath-to-json documentation.

import os
import sys

sys.path.insert(0, os.path.abspath("../.."))

project = "xpath-to-json"
author = "xpath-to-json contributors"

extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.doctest",
    "sphinx.ext.napoleon",
    "sphinx.ext.viewcode",
    "sphinx.ext.intersphinx",
    "sphinx_immaterial",
]

html_theme = "sphinx_immaterial"
html_theme_options = {
    "font": False,
    "features": ["search.highlight", "navigation.top", "toc.follow"],
}

# Docstrings are Google style.
napoleon_numpy_docstring = False

# Pydantic's model_config is noise on the rule models.
autodoc_default_options = {
    "members": True,
    "member-order": "bysource",
    "exclude-members": "model_config",
}
autodoc_typehints = "description"

intersphinx_mapping = {
    "python": ("https://docs.python.org/3", None),
    "lxml": ("https://lxml.de/apidoc", None),
    "click": ("https://click.palletsprojects.com/en/stable", None),
}
