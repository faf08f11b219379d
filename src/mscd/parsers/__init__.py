"""Declaration extractors for the analyzed language."""
