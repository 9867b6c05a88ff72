"""Escalation of compiler retry signals into whole-chunk rebuilds."""

import logging

from .state import ChunkBuildState


class ChunkRebuildEscalator:
    """Turns a compiler "should retry" signal into a chunk rebuild request.

    A chunk may order a full rebuild only once in a row: the next retry signal
    for the same chunk clears the flag instead of ordering another rebuild, so
    a compiler that keeps asking for retries cannot loop forever.
    """

    def check_rebuild_needed(
        self,
        state: ChunkBuildState,
        should_retry: bool,
        forced_recompilation_all: bool = False
    ) -> bool:
        """Decide whether the current round must end with a chunk rebuild.

        Args:
            state: State of the chunk being built
            should_retry: Retry hint from the compiler output
            forced_recompilation_all: The engine already recompiles everything

        Returns:
            True if a full chunk rebuild must be requested
        """
        if forced_recompilation_all or not should_retry:
            return False

        if state.rebuild_ordered:
            state.rebuild_ordered = False
            return False

        state.rebuild_ordered = True
        logging.info("Order chunk rebuild")
        return True
