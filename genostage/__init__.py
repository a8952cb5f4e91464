# File: genostage/__init__.py
# Location: genostage/genostage/__init__.py

"""
genostage Package.

This package resolves genomic data files delivered by upstream providers
(flat tables, gzip and tar archives, mutation annotation files), turns them
into uniform tab-delimited staging files, and runs mutation files through an
external liftover, annotation and scoring pipeline.
"""

from .version import __version__
