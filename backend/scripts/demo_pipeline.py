#!/usr/bin/env python3
"""
Demo script — run the dispatcher locally against a scratch directory.

Shows a file copy, a read → run → write flow, named cache keys, and a
failing pipeline that stops at the broken step.

Usage:
    cd backend
    python -m scripts.demo_pipeline
"""

import asyncio
import os
import stat
import sys
import tempfile
from pathlib import Path

sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))


async def run_file_copy(workdir: Path):
    """DEMO 1: read a file, write it somewhere else."""
    from dashpipe.pipeline.dispatcher import Dispatcher
    from dashpipe.pipeline.loader import parse_config

    print("\n" + "=" * 70)
    print("  DEMO 1: File copy")
    print("=" * 70)

    (workdir / "a.txt").write_text("hello from a.txt\n")
    config = parse_config(f"""
steps:
  - read:
      file:
        location: {workdir / "a.txt"}
  - write:
      file:
        location: {workdir / "b.txt"}
""")
    result = await Dispatcher().run_config(config)
    _print_result(result)
    print(f"  b.txt        : {(workdir / 'b.txt').read_text()!r}")


async def run_transform(workdir: Path):
    """DEMO 2: read → run → write, with a per-step env override."""
    from dashpipe.pipeline.dispatcher import Dispatcher
    from dashpipe.pipeline.loader import parse_config

    print("\n" + "=" * 70)
    print("  DEMO 2: Read → run → write")
    print("=" * 70)

    script = workdir / "transform.sh"
    script.write_text('#!/bin/sh\necho "{\\"mode\\": \\"$MODE\\"}"\n')
    script.chmod(script.stat().st_mode | stat.S_IXUSR)
    (workdir / "in.json").write_text('{"raw": true}\n')

    config = parse_config(f"""
steps:
  - name: source
    read:
      file:
        location: {workdir / "in.json"}
  - name: transformed
    run: {script}
    env:
      MODE: demo
  - write:
      file:
        location: {workdir / "out.json"}
  - write:
      file:
        location: {workdir / "source-copy.json"}
    input: source
""")
    result = await Dispatcher().run_config(config)
    _print_result(result)
    print(f"  out.json     : {(workdir / 'out.json').read_text()!r}")


async def run_failing(workdir: Path):
    """DEMO 3: a missing input file stops the pipeline at step 0."""
    from dashpipe.pipeline.dispatcher import Dispatcher
    from dashpipe.pipeline.loader import parse_config

    print("\n" + "=" * 70)
    print("  DEMO 3: Failing step")
    print("=" * 70)

    config = parse_config(f"""
steps:
  - read:
      file:
        location: {workdir / "does-not-exist.txt"}
  - write:
      file:
        location: {workdir / "never.txt"}
""")
    result = await Dispatcher().run_config(config)
    _print_result(result)


def _print_result(result):
    """Pretty-print a PipelineResult."""
    print(f"\n{'─' * 50}")
    print(f"  Execution ID : {result.execution_id[:12]}...")
    print(f"  Status       : {result.status}")
    print(f"  Steps        : {result.steps_completed}/{result.total_steps}")
    print(f"  Duration     : {result.total_duration_ms}ms")
    if result.error:
        print(f"  Error        : [{result.error_kind}] {result.error}")

    print(f"\n  Step Results:")
    for sr in result.step_results:
        icon = "✓" if sr["status"] == "COMPLETED" else "✗"
        print(f"    {icon} {sr['step_index']} {sr['step_name']} "
              f"{sr['kind']}.{sr['medium']} ({sr['duration_ms']}ms)")
        for k, v in sr.get("metadata", {}).items():
            print(f"        {k}: {v}")

    print(f"{'─' * 50}")


async def main():
    from dashpipe.core.logging import setup_logging
    setup_logging("WARNING")     # quiet logs, show formatted output only

    print("\n╔" + "═" * 68 + "╗")
    print("║               DASHPIPE — DISPATCHER DEMO                           ║")
    print("╚" + "═" * 68 + "╝")

    with tempfile.TemporaryDirectory(prefix="dashpipe-demo-") as tmp:
        workdir = Path(tmp)
        await run_file_copy(workdir)
        await run_transform(workdir)
        await run_failing(workdir)

    print("\n✅ All demos finished.\n")


if __name__ == "__main__":
    asyncio.run(main())
