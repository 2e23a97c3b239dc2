"""
Record store implementations
"""
from .interface import RecordStore
from .elasticsearch import ElasticsearchRecordStore

__all__ = [
    'RecordStore',
    'ElasticsearchRecordStore',
]
