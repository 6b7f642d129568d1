"""Pipeline orchestration"""

from .analysis_pipeline import AnalysisPipeline, PipelineResult, MERGED_TABLE, ENRICHED_TABLE

__all__ = ['AnalysisPipeline', 'PipelineResult', 'MERGED_TABLE', 'ENRICHED_TABLE']
