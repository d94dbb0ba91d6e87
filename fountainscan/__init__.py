"""FountainScan: heuristic fraud-risk scoring for URLs and rendered pages."""

__version__ = "1.0.0"
