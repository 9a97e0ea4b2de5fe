"""uibench command-line interface."""
