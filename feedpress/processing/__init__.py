"""
FeedPress Processing Module
===========================

Pipeline components: feed ingestion, keyword classification, topic
grouping and the publication orchestrator.
"""

from .feed_fetcher import FeedFetcher, FetchResult
from .keyword_classifier import KeywordClassifier
from .topic_grouping import group_by_topic, UNCATEGORIZED_TOPIC
from .pipeline import ProcessingPipeline

__all__ = [
    'FeedFetcher',
    'FetchResult',
    'KeywordClassifier',
    'group_by_topic',
    'UNCATEGORIZED_TOPIC',
    'ProcessingPipeline',
]
