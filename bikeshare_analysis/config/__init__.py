"""Configuration management module"""

from .settings import settings, Settings, DataSourceConfig, PipelineConfig, SUPPORTED_TABLE_FORMATS

__all__ = ['settings', 'Settings', 'DataSourceConfig', 'PipelineConfig', 'SUPPORTED_TABLE_FORMATS']
