# services/digest_service.py
from core.exceptions import DocumentStoreError, MessageSourceError
from core.logger import logger
from infrastructure.async_factory import BaseAsyncFactory
from models.digest import DigestRunResult
from utils.timer import StepTimer


class ChannelDigestService(BaseAsyncFactory):
    """
    Folds new channel messages into the topics summary and changelog documents.

    Flow per run:
    - Load the checkpoint (failure aborts the run).
    - Fetch messages newer than the checkpoint, newest first. A source
      failure counts as zero messages.
    - No messages: stop. Checkpoint and documents are left untouched.
    - Read both documents (an unreadable document is treated as empty).
    - Merge; a failed merge passes the current documents through unchanged.
    - Replace topics, then changelog. A failed write is logged and the run
      carries on.
    - Advance the checkpoint to the newest message timestamp (failure aborts).

    Known limitations:
    - Replace is delete-then-append; a failure between the two leaves the
      document empty.
    - The checkpoint advances even if a document write failed.
    - Concurrent runs against the same checkpoint must be prevented by the
      scheduler.
    """

    def __init__(self, checkpoints, source, documents, merger, topics_id: str, changelog_id: str,
                 run_once=False, health_checks=(), closeables=()):
        super().__init__(run_once=run_once)
        self.checkpoints = checkpoints
        self.source = source
        self.documents = documents
        self.merger = merger
        self.topics_id = topics_id
        self.changelog_id = changelog_id
        self._health_checks = list(health_checks)
        self._closeables = list(closeables)
        self.timer = StepTimer()
        self.last_result = None

    def health_checkers(self) -> list:
        return self._health_checks

    def resources(self) -> list:
        return self._closeables

    async def service_setup(self):
        logger.info(f"ChannelDigestService ready (topics={self.topics_id}, changelog={self.changelog_id})")

    async def process_batch(self) -> int:
        result = await self.run()
        return result.messages

    async def run(self) -> DigestRunResult:
        self.timer.reset()

        with self.timer.time("checkpoint_load"):
            checkpoint = await self.checkpoints.load()

        with self.timer.time("fetch"):
            try:
                messages = await self.source.fetch(checkpoint)
            except MessageSourceError as e:
                logger.error(f"Error fetching messages: {e}")
                messages = []

        if not messages:
            logger.info("No new messages to process.")
            self.last_result = DigestRunResult(messages=0, checkpoint_before=checkpoint, checkpoint_after=checkpoint)
            return self.last_result

        with self.timer.time("read_documents"):
            topics = await self.documents.read(self.topics_id)
            changelog = await self.documents.read(self.changelog_id)

        with self.timer.time("merge"):
            merged = await self.merger.merge(messages, topics, changelog)

        written = 0
        with self.timer.time("write_documents"):
            for document_id, body in ((self.topics_id, merged.topics), (self.changelog_id, merged.changelog)):
                try:
                    await self.documents.replace(document_id, body)
                    written += 1
                except DocumentStoreError as e:
                    logger.error(f"Error updating document {e.document_id}: {e}")

        # max() rather than messages[0] keeps the advance correct whatever the source order
        newest = max(message.timestamp for message in messages)
        advanced_to = max(checkpoint, newest)
        with self.timer.time("checkpoint_save"):
            await self.checkpoints.save(advanced_to)

        self.timer.log()
        self.last_result = DigestRunResult(
            messages=len(messages),
            checkpoint_before=checkpoint,
            checkpoint_after=advanced_to,
            documents_written=written,
            merged=merged.merged,
        )
        if written == 2:
            logger.info(f"Documents updated successfully: {self.last_result}")
        else:
            logger.warning(f"Run finished with {2 - written} failed document write(s): {self.last_result}")
        return self.last_result
