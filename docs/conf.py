# Configuration file for the Sphinx documentation builder.

import os
import sys

# Make the src layout importable for autodoc
sys.path.insert(0, os.path.abspath("../src"))

from osi_licenses import __version__  # noqa: E402

# -- Project information -----------------------------------------------------
project = "OSI Licenses"
copyright = "2026, OSI Licenses Contributors"
author = "OSI Licenses Contributors"
release = __version__

# -- General configuration ---------------------------------------------------
# index.md is MyST Markdown with a {mermaid} flowchart and an {eval-rst}
# block of automodule directives over Google-style docstrings.
extensions = [
    "sphinx.ext.autodoc",
    "sphinx.ext.napoleon",
    "myst_parser",
    "sphinxcontrib.mermaid",
]

napoleon_google_docstring = True
napoleon_numpy_docstring = False
napoleon_include_init_with_doc = True

source_suffix = {".md": "markdown"}
root_doc = "index"
exclude_patterns = ["_build"]

# -- Options for HTML output -------------------------------------------------
html_theme = "sphinx_rtd_theme"

# -- Autodoc settings --------------------------------------------------------
autodoc_default_options = {
    "members": True,
    "member-order": "bysource",
    "exclude-members": "__weakref__",
}

autodoc_typehints = "description"

# Dataclass fields are documented twice (attribute and __init__ parameter)
suppress_warnings = ["ref.python"]
