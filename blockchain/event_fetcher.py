"""
Event Fetcher
Past event retrieval for the ledger contract
"""

from typing import Any, Dict, List, Optional, Union
from loguru import logger

from .exceptions import NotFoundError, TransportError
from .models import EventLog, to_hex_str


class EventFetcher:
    """Fetches decoded event logs emitted by a contract"""

    def __init__(self, contract: Any, abi: List[Dict]):
        self.contract = contract
        self.event_names = [item['name'] for item in abi if item.get('type') == 'event']

    async def fetch_events(
        self,
        event_name: Optional[str] = None,
        from_block: Union[int, str] = 0,
        to_block: Union[int, str] = 'latest'
    ) -> List[EventLog]:
        """
        Fetch event logs

        Args:
            event_name: Event to fetch; every ABI event when omitted
            from_block: First block to search
            to_block: Last block to search

        Returns:
            Event logs ordered by block number and log index
        """
        if event_name and event_name not in self.event_names:
            raise NotFoundError(f'Event "{event_name}" not found')

        names = [event_name] if event_name else self.event_names
        logs = []

        for name in names:
            event = getattr(self.contract.events, name)
            try:
                entries = event().get_logs(from_block=from_block, to_block=to_block)
            except Exception as e:
                logger.error(f"Error fetching {name} events: {e}")
                raise TransportError(f"Failed to fetch events: {e}") from e

            logs.extend(self._to_event_log(entry) for entry in entries)

        logs.sort(key=lambda log: (log.block_number, log.log_index))
        logger.debug(f"Fetched {len(logs)} events from block {from_block} to {to_block}")
        return logs

    @staticmethod
    def _to_event_log(entry: Any) -> EventLog:
        return EventLog(
            event=entry['event'],
            address=entry['address'],
            block_number=entry['blockNumber'],
            transaction_hash=to_hex_str(entry['transactionHash']),
            transaction_index=entry['transactionIndex'],
            block_hash=to_hex_str(entry['blockHash']),
            log_index=entry['logIndex'],
            args=dict(entry['args']),
            raw=entry
        )
