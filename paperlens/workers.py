"""
Background Workers Module

Runs an interpretation off the UI thread and reports through a queue:
- InterpretationWorker: one document, one interpretation

The UI polls the queue and dispatches on the message type, so the pipeline
never calls into the UI directly.
"""

import threading
import traceback
from queue import Queue

from paperlens.errors import InterpretationCancelled, InterpretationError
from paperlens.interpretation import (
    CancellationToken,
    ContentEvent,
    InterpretationOrchestrator,
    ProgressEvent,
    ResultEvent,
)
from paperlens.logging_config import debug_log


class InterpretationWorker(threading.Thread):
    """
    Background worker for whole-paper interpretation.

    Signals sent to ui_queue:
    - ('progress', (phase, percent, detail)) - Pipeline progress
    - ('content', str) - Full report text so far (grows with every delta)
    - ('interpretation_finished', InterpretationResult) - Report ready
    - ('cancelled', str) - Stopped by stop()
    - ('error', str) - "<Label>: <cause>" of the failure

    Example:
        worker = InterpretationWorker(
            orchestrator=orchestrator,
            document_path="paper.pdf",
            ui_queue=ui_queue,
        )
        worker.start()
    """

    def __init__(
        self,
        orchestrator: InterpretationOrchestrator,
        document_path,
        ui_queue: Queue,
        force_refresh: bool = False,
    ):
        """
        Initialize interpretation worker.

        Args:
            orchestrator: Pipeline to run
            document_path: Path of the PDF or TXT file
            ui_queue: Queue for UI communication
            force_refresh: Ignore a saved interpretation
        """
        super().__init__(daemon=True)
        self.orchestrator = orchestrator
        self.document_path = document_path
        self.ui_queue = ui_queue
        self.force_refresh = force_refresh
        self._cancel_token = CancellationToken()
        self.result = None

    def stop(self):
        """Signal the worker to stop at the pipeline's next checkpoint."""
        debug_log("[INTERPRETATION WORKER] Stop signal received.")
        self._cancel_token.cancel()

    def run(self):
        """Execute the interpretation in background thread."""
        try:
            debug_log(f"[INTERPRETATION WORKER] Starting interpretation of {self.document_path}")

            events = self.orchestrator.interpret(
                self.document_path,
                force_refresh=self.force_refresh,
                cancel_token=self._cancel_token,
            )
            for event in events:
                if isinstance(event, ProgressEvent):
                    self.ui_queue.put(('progress', event.as_tuple()))
                elif isinstance(event, ContentEvent):
                    self.ui_queue.put(('content', event.text))
                elif isinstance(event, ResultEvent):
                    self.result = event.result

            self.ui_queue.put(('interpretation_finished', self.result))
            debug_log(f"[INTERPRETATION WORKER] Complete: {len(self.result.content)} chars, "
                      f"from_cache={self.result.from_cache}")

        except InterpretationCancelled as e:
            debug_log(f"[INTERPRETATION WORKER] {e}")
            self.ui_queue.put(('cancelled', str(e)))

        except InterpretationError as e:
            debug_log(f"[INTERPRETATION WORKER] {e}")
            self.ui_queue.put(('error', str(e)))

        except Exception as e:
            error_msg = f"Interpretation failed: {str(e)}"
            debug_log(f"[INTERPRETATION WORKER] {error_msg}\n{traceback.format_exc()}")
            self.ui_queue.put(('error', error_msg))
