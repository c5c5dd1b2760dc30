"""
This package contains the processing pipeline of the Media Normalizer.

- orchestrator.py: The per-file state machine (inspect, decide, repair,
  unpack, transcode, finalize, clean up).
- batch.py: Discovers the working set, runs the orchestrator over it
  sequentially or in a process pool, and reports the batch outcome.
"""
