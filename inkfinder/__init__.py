# Path: inkfinder/__init__.py
# Purpose: Package initializer for the image search core.
# Layer: inkfinder.
# Details: Aggregates subpackages for models, embedders, the metadata store, search, and indexing.
