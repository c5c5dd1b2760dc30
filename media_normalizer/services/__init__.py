"""
Services Package for the Media Normalizer.

A service performs one well-defined task for the pipeline and hides the
external media engine behind it:

- **Media Engine (`MediaEngine`):** Runs ffprobe and ffmpeg. Every other
  service talks to the engine through this class, which keeps them testable
  with a scripted fake.

- **Media Inspector (`MediaInspector`):** Probes a file and turns the result
  into `MediaProperties`.

- **Decision Engine (`decide`):** A pure function from properties to the
  action plan for a file.

- **Stage Executor (`StageExecutor`):** Builds the ffmpeg arguments of one
  transform stage, runs it and verifies the produced artifact.

- **Logging Service (`ErrorLog`, `SummaryLog`):** File logs kept next to the
  real-time console logging: plain-text errors and a YAML report per batch.
"""
