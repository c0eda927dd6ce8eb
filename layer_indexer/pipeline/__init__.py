# layer_indexer/pipeline/__init__.py

from .indexing_pipeline import IndexingPipeline, PipelineResult
