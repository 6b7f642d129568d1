"""
Bike-Share Rider Analysis Pipeline

A batch pipeline that merges monthly bike-share trip batches, derives ride
features and computes the summary tables comparing casual and member riders.
"""

__version__ = "1.0.0"
__author__ = "Data Engineering Team"
