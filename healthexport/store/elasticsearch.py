#!/usr/bin/env python3
"""
Elasticsearch record store - implements RecordStore

One index per record kind (``<prefix>-steps``, ``<prefix>-heart-rate``, ...)
holding snake_case record documents.
"""
import logging
import re
from typing import Any, Dict, Iterable, List, Set

from elasticsearch import Elasticsearch

from .interface import RecordStore
from ..catalog import all_capabilities
from ..exceptions import RecordDecodeError, store_error
from ..records import InstantRecord, Record, RecordKind, decode_record, record_class_for
from ..window import TimeWindow, format_instant


logger = logging.getLogger(__name__)

GRANT_ALL = "*"


def index_suffix(kind: RecordKind) -> str:
    """``HeartRateVariabilityRmssdRecord`` -> ``heart-rate-variability-rmssd``"""
    name = kind.value[:-len("Record")]
    return re.sub(r"(?<!^)(?=[A-Z])", "-", name).lower()


def time_field(kind: RecordKind) -> str:
    """Field the window filter applies to"""
    if issubclass(record_class_for(kind), InstantRecord):
        return "time"
    return "start_time"


class ElasticsearchRecordStore(RecordStore):
    """Elasticsearch-backed health record store"""

    def __init__(self, client: Elasticsearch, granted_permissions: Iterable[str],
                 index_prefix: str = "health-records", page_size: int = 10000):
        self.es = client
        self.index_prefix = index_prefix
        self.page_size = page_size
        self._granted = set(granted_permissions)

    @classmethod
    def from_config(cls, config: Dict[str, Any]) -> "ElasticsearchRecordStore":
        """Create a store from a connection configuration dictionary"""
        try:
            hosts = config.get('hosts', ['http://localhost:9200'])
            hosts = [host if host.startswith(('http://', 'https://'))
                     else f"http://{host}" for host in hosts]

            es_config = {
                'hosts': hosts,
                'request_timeout': config.get('timeout', 30),
                'verify_certs': config.get('verify_certs', False),
            }

            # Only use auth if both username and password are provided
            if config.get('username') and config.get('password'):
                es_config['basic_auth'] = (config['username'], config['password'])

            client = Elasticsearch(**es_config)

        except Exception as e:
            logger.error(f"❌ Failed to create Elasticsearch client: {e}")
            raise store_error(f"Elasticsearch initialization failed: {e}", hosts=config.get('hosts'))

        return cls(
            client,
            granted_permissions=config.get('granted_permissions', []),
            index_prefix=config.get('index_prefix', 'health-records'),
            page_size=config.get('page_size', 10000),
        )

    def index_name(self, kind: RecordKind) -> str:
        return f"{self.index_prefix}-{index_suffix(kind)}"

    def list_granted_capabilities(self) -> Set[str]:
        if GRANT_ALL in self._granted:
            return set(all_capabilities())
        return set(self._granted)

    def query(self, kind: RecordKind, window: TimeWindow) -> List[Record]:
        """Search one kind's index for documents inside the window"""
        index_name = self.index_name(kind)
        field = time_field(kind)

        try:
            response = self.es.search(
                index=index_name,
                query={
                    "range": {
                        field: {
                            "gte": format_instant(window.start),
                            "lt": format_instant(window.end),
                        }
                    }
                },
                sort=[{field: {"order": "asc"}}],
                size=self.page_size,
            )
        except Exception as e:
            logger.error(f"❌ Search failed on {index_name}: {e}")
            raise store_error(f"Search failed: {e}", index=index_name)

        hits = response['hits']['hits']
        if len(hits) >= self.page_size:
            logger.warning(f"⚠️ {index_name} returned a full page ({self.page_size}); records may be truncated")

        return [self._decode(hit, kind) for hit in hits]

    def _decode(self, hit: Dict[str, Any], kind: RecordKind) -> Record:
        source = hit['_source']
        try:
            return decode_record(source, kind)
        except RecordDecodeError as e:
            raise RecordDecodeError(e.message, {**e.details, "index": hit.get('_index'), "doc_id": hit.get('_id')})

    def ping(self) -> bool:
        try:
            return bool(self.es.ping())
        except Exception as e:
            logger.warning(f"Elasticsearch ping failed: {e}")
            return False

    def close(self) -> None:
        if self.es is not None:
            self.es.close()
