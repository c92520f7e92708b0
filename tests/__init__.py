"""Test suite for the Polyglot Route Extractor."""
