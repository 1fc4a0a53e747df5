"""extdiff - external diff tool ingestion.

Runs a pluggable external diff tool through git, streams its line-delimited
JSON output and folds it into one normalized diff model.
"""

__version__ = "1.0.0"
__author__ = "extdiff maintainers"
__email__ = "dev@extdiff.dev"

__all__ = []
