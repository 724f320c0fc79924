"""In-memory call -> job correlation.

Vapi delivers a call as a series of independent webhooks (tool calls while
the caller is on the line, then an end-of-call report after hangup). This
table is what ties them to one job row in the sheet.

Memory only. A restart forgets every correlation, and later events for an
in-flight call then mint a fresh job id. Entries live for the process
lifetime unless an idle TTL is configured (see ``cleanup_stale``).
"""

import logging
import secrets
import string
import threading
import time

logger = logging.getLogger(__name__)

JOB_ID_PREFIX = "job_"
JOB_ID_ALPHABET = string.digits + string.ascii_lowercase
JOB_ID_SUFFIX_LEN = 7


def new_job_id():
    """Mint ``job_`` + 7 random base36 chars. Not guaranteed unique."""
    suffix = "".join(secrets.choice(JOB_ID_ALPHABET) for _ in range(JOB_ID_SUFFIX_LEN))
    return JOB_ID_PREFIX + suffix


class CallJobCorrelator:
    """Maps call ids to job ids. Last writer wins.

    FastAPI runs sync endpoints on a thread pool, so every read-modify-write
    goes through ``_lock``.
    """

    def __init__(self, ttl_hours=0, clock=time.time, id_factory=new_job_id):
        self._entries = {}  # call_id -> (job_id, touched_at)
        self._lock = threading.Lock()
        self._ttl_hours = ttl_hours
        self._clock = clock
        self._id_factory = id_factory

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def __contains__(self, call_id):
        with self._lock:
            return call_id in self._entries

    def resolve_or_create(self, call_id):
        """Return the job id for ``call_id``, minting one on first sight.

        An empty call id can't be correlated: a fresh id is returned and
        nothing is stored.
        """
        return self.resolve(call_id)[0]

    def resolve(self, call_id):
        """Like ``resolve_or_create`` but returns ``(job_id, created)``.

        ``created`` is decided under the lock, so exactly one of several
        concurrent first events for a call sees True.
        """
        if not call_id:
            job_id = self._id_factory()
            logger.info(f"Uncorrelated event, minted job_id={job_id}")
            return job_id, True

        with self._lock:
            entry = self._entries.get(call_id)
            if entry:
                job_id = entry[0]
                self._entries[call_id] = (job_id, self._clock())
                return job_id, False
            job_id = self._id_factory()
            self._entries[call_id] = (job_id, self._clock())

        logger.info(f"Correlated call_id={call_id} -> job_id={job_id}")
        return job_id, True

    def bind(self, call_id, job_id):
        """Force ``call_id`` onto ``job_id``, replacing any minted id."""
        if not call_id or not job_id:
            return
        with self._lock:
            previous = self._entries.get(call_id)
            self._entries[call_id] = (job_id, self._clock())
        if previous and previous[0] != job_id:
            logger.info(f"Rebound call_id={call_id}: {previous[0]} -> {job_id}")
        else:
            logger.info(f"Bound call_id={call_id} -> job_id={job_id}")

    def lookup(self, call_id):
        """Return the stored job id or None. No side effects."""
        with self._lock:
            entry = self._entries.get(call_id)
        return entry[0] if entry else None

    def cleanup_stale(self, max_age_hours=None):
        """Drop entries idle longer than ``max_age_hours`` (default: the TTL).

        A TTL of 0 disables eviction. Returns the number of entries removed.
        """
        if max_age_hours is None:
            max_age_hours = self._ttl_hours
        if not max_age_hours or max_age_hours <= 0:
            return 0
        cutoff = self._clock() - (max_age_hours * 3600)
        with self._lock:
            stale = [k for k, (_, touched) in self._entries.items() if touched < cutoff]
            for call_id in stale:
                del self._entries[call_id]
        if stale:
            logger.info(f"Cleaned up {len(stale)} stale call correlations")
        return len(stale)
