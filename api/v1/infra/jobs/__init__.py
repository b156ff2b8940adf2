"""
Postgres-backed job queue.

Jobs are claimed in batches with SELECT ... FOR UPDATE SKIP LOCKED, handed
to the handler registered for their queue name, and written back under the
claim's lock token. Repeated failures end in the dead-letter queue.
"""
