"""Raw batch acquisition"""

from .data_source import TripDataSource, TripDataFile
from .file_extractor import FileExtractor
from .batch_reader import read_trip_batch, read_trip_batches, discover_batches

__all__ = [
    'TripDataSource', 'TripDataFile', 'FileExtractor',
    'read_trip_batch', 'read_trip_batches', 'discover_batches'
]
