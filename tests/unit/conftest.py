# tests/unit/conftest.py
"""
Shared pytest fixtures for the bike-share analysis pipeline tests
"""

import os
from unittest.mock import patch

import numpy as np
import pandas as pd
import pytest

from bikeshare_analysis.models.trip_record import TRIP_COLUMN_NAMES, TripBatch
from bikeshare_analysis.transformers.feature_deriver import FeatureDeriver


def _trip(
    ride_id,
    started_at,
    ended_at,
    member_casual="member",
    start_station_name=None,
    end_station_name=None,
    rideable_type="classic_bike"
):
    return {
        'ride_id': ride_id,
        'rideable_type': rideable_type,
        'started_at': started_at,
        'ended_at': ended_at,
        'start_station_name': start_station_name if start_station_name is not None else np.nan,
        'start_station_id': f"S-{start_station_name}" if start_station_name else np.nan,
        'end_station_name': end_station_name if end_station_name is not None else np.nan,
        'end_station_id': f"S-{end_station_name}" if end_station_name else np.nan,
        'start_lat': 41.88,
        'start_lng': -87.63,
        'end_lat': 41.89,
        'end_lng': -87.62,
        'member_casual': member_casual if member_casual is not None else np.nan,
    }


@pytest.fixture
def make_trip():
    """Factory building one raw trip record as a dict"""
    return _trip


@pytest.fixture
def make_frame():
    """Factory building a raw trip frame from trip dicts"""
    def _frame(rows):
        return pd.DataFrame(rows, columns=TRIP_COLUMN_NAMES)
    return _frame


@pytest.fixture
def example_trips(make_frame):
    """
    Three raw records: one valid member ride, one with a negative duration
    and one lasting more than 24 hours
    """
    return make_frame([
        _trip("A", "2024-01-05 08:00:00", "2024-01-05 08:15:00", "member",
              start_station_name="Clark St", end_station_name="Wells St"),
        _trip("B", "2024-01-06 10:00:00", "2024-01-06 09:59:00", "casual",
              start_station_name="Streeter Dr", end_station_name="Streeter Dr"),
        _trip("C", "2024-01-07 23:00:00", "2024-01-08 23:30:31", "casual",
              start_station_name="Streeter Dr", end_station_name="Millennium Park"),
    ])


@pytest.fixture
def analysis_trips(make_frame):
    """
    Eight valid rides across Sunday, Monday, Wednesday and Saturday

    Includes a ride without rider type and rides without start or end station.
    """
    return make_frame([
        _trip("1", "2024-01-07 07:10:00", "2024-01-07 07:30:00", "member", "Clark St", "Wells St"),
        _trip("2", "2024-01-08 08:00:00", "2024-01-08 08:10:00", "member", "Clark St", "Lake Shore Dr"),
        _trip("3", "2024-01-08 17:00:00", "2024-01-08 17:30:00", "member", "State St", "Wells St"),
        _trip("4", "2024-01-13 14:00:00", "2024-01-13 15:00:00", "casual", "Streeter Dr", "Streeter Dr"),
        _trip("5", "2024-01-13 14:30:00", "2024-01-13 15:10:00", "casual", "Streeter Dr", "Millennium Park"),
        _trip("6", "2024-01-07 09:00:00", "2024-01-07 09:25:00", "casual", None, "Millennium Park"),
        _trip("7", "2024-01-10 17:05:00", "2024-01-10 17:20:00", "casual", "Clark St", None),
        _trip("8", "2024-01-08 08:30:00", "2024-01-08 08:40:00", None, "State St", "Wells St"),
    ])


@pytest.fixture
def enriched_trips(analysis_trips):
    """The analysis trips after feature derivation"""
    return FeatureDeriver().derive(analysis_trips).frame


@pytest.fixture
def monthly_batches(make_frame):
    """Two monthly batches sharing the trip schema"""
    january = make_frame([
        _trip("J1", "2024-01-05 08:00:00", "2024-01-05 08:15:00", "member", "Clark St", "Wells St"),
        _trip("J2", "2024-01-06 10:00:00", "2024-01-06 10:20:00", "casual", "Streeter Dr", "Streeter Dr"),
    ])
    february = make_frame([
        _trip("F1", "2024-02-03 12:00:00", "2024-02-03 12:45:00", "casual", "Streeter Dr", "Millennium Park"),
        _trip("F2", "2024-02-04 18:00:00", "2024-02-04 17:00:00", "member", "State St", "Clark St"),
        _trip("F3", "2024-02-05 09:00:00", "2024-02-05 09:05:00", "member", "State St", "Clark St"),
    ])
    return [TripBatch("202401", january), TripBatch("202402", february)]


@pytest.fixture
def pipeline_env(tmp_path):
    """Environment variables pointing the pipeline at temporary directories"""
    env = {
        'DATA_DIR': str(tmp_path / "data"),
        'OUTPUT_DIR': str(tmp_path / "output"),
        'TABLE_FORMAT': 'csv',
        'MAX_WORKERS': '2',
    }
    with patch.dict(os.environ, env):
        yield env
