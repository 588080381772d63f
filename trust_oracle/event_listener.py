# trust_oracle/event_listener.py
import logging
import threading
from collections import deque

from trust_oracle.config import Config

logger = logging.getLogger(__name__)

SEEN_REQUEST_LIMIT = 10000


class AuditRequestListener:
    """
    Polls the contract's AuditRequested filter and hands every new request to
    the fulfillment pipeline on its own thread. Requests for different ids run
    concurrently; a repeated delivery of an id already seen is dropped.

    When the node drops the filter it is rebuilt from the first block not yet
    covered by a successful poll, so requests mined in between are not lost.
    """

    def __init__(self, chain, pipeline, poll_interval=None, seen_limit=SEEN_REQUEST_LIMIT):
        self.chain = chain
        self.pipeline = pipeline
        self.poll_interval = poll_interval if poll_interval is not None else Config.EVENT_POLL_INTERVAL_SECONDS
        self._filter = None
        self._resume_block = None
        self._seen_request_ids = set()
        self._seen_order = deque()
        self._seen_limit = seen_limit
        self._seen_lock = threading.Lock()
        self._stop = threading.Event()
        self._thread = None
        self._workers = []

    def _claim(self, request_id):
        with self._seen_lock:
            if request_id in self._seen_request_ids:
                return False
            if len(self._seen_order) >= self._seen_limit:
                self._seen_request_ids.discard(self._seen_order.popleft())
            self._seen_order.append(request_id)
            self._seen_request_ids.add(request_id)
            return True

    def dispatch(self, event):
        """Start a fulfillment thread for one AuditRequested log entry."""
        args = event["args"]
        request_id = int(args["requestId"])
        if not self._claim(request_id):
            logger.debug(f"Skipping duplicate audit request #{request_id}")
            return None

        worker = threading.Thread(
            target=self.pipeline.fulfill,
            args=(request_id, args["target"], args["requester"], int(args["fee"])),
            name=f"audit-{request_id}",
            daemon=True,
        )
        worker.start()
        self._workers = [w for w in self._workers if w.is_alive()]
        self._workers.append(worker)
        return worker

    def _ensure_filter(self):
        if self._filter is None:
            if self._resume_block is None:
                self._resume_block = int(self.chain.get_block_number())
            logger.info(f"Creating AuditRequested filter from block {self._resume_block}")
            self._filter = self.chain.audit_request_filter(from_block=self._resume_block)
        return self._filter

    def poll_once(self):
        """Fetch new entries from the filter and dispatch them. Returns the count dispatched."""
        log_filter = self._ensure_filter()
        try:
            # entries returned below cover at least every block up to this head
            head = int(self.chain.get_block_number())
            entries = log_filter.get_new_entries()
        except Exception as e:
            # node-side filters expire; rebuild on the next poll
            logger.error(f"AuditRequested filter error (resuming from block {self._resume_block}): {e}")
            self._filter = None
            return 0

        dispatched = 0
        resume = max(self._resume_block, head + 1)
        for event in entries:
            block_number = event.get("blockNumber") if hasattr(event, "get") else None
            if block_number is not None:
                resume = max(resume, int(block_number) + 1)
            try:
                if self.dispatch(event) is not None:
                    dispatched += 1
            except Exception as e:
                logger.error(f"Malformed AuditRequested event {event!r}: {e}")
        self._resume_block = resume
        return dispatched

    def _run(self):
        logger.info("👂 Listening for AuditRequested events...")
        while not self._stop.is_set():
            try:
                self.poll_once()
            except Exception as e:
                logger.error(f"Listener loop error: {e}")
                self._filter = None
            self._stop.wait(self.poll_interval)

    def start(self):
        if self._thread and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="audit-listener", daemon=True)
        self._thread.start()

    def stop(self, timeout=None):
        self._stop.set()
        if self._thread:
            self._thread.join(timeout)

    def join_workers(self, timeout=None):
        for worker in list(self._workers):
            worker.join(timeout)
