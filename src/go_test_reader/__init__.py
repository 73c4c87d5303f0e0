"""go-test-reader: structured results from ``go test`` logs."""

__version__ = "0.1.0"
