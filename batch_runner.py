"""
Batch processing of many transcripts (one spreadsheet row each).

Items run strictly one after another. A failing item records its error and the
batch moves on; items already processed are skipped, so re-running a batch only
retries what is still pending or failed.
"""

import argparse
import copy
import sys
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Optional

import script_types
from build_script import ProcessingResult, process_transcript
from config import config


def is_truthy_flag(value: Any) -> bool:
    """Read a done flag from JSON or a spreadsheet cell ("Yes"/"No", "true", 1, True...)."""
    if isinstance(value, bool):
        return value
    return str(value or "").strip().lower() in ("yes", "true", "1", "x")


@dataclass
class BatchResultItem:
    transcript: str = ""
    outline: str = ""
    first_sections: str = ""
    last_sections: str = ""
    processed: bool = False
    error: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)  # Other spreadsheet columns, kept as-is

    @property
    def status(self) -> str:
        """'done', 'error' or 'pending'."""
        if self.processed:
            return "done"
        if self.error:
            return "error"
        return "pending"

    def to_dict(self) -> dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "transcript": self.transcript,
            "outline": self.outline,
            "firstSections": self.first_sections,
            "lastSections": self.last_sections,
            "processed": self.processed,
        })
        if self.error:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "BatchResultItem":
        # fullContent is derived from the two halves on export
        known = {"transcript", "outline", "firstSections", "lastSections", "fullContent", "processed", "error"}
        return cls(
            transcript=str(data.get("transcript") or ""),
            outline=str(data.get("outline") or ""),
            first_sections=str(data.get("firstSections") or ""),
            last_sections=str(data.get("lastSections") or ""),
            processed=is_truthy_flag(data.get("processed")),
            error=data.get("error") or None,
            extra={k: v for k, v in data.items() if k not in known},
        )


ProcessFn = Callable[[str], ProcessingResult]


def run_batch(
    items: list[BatchResultItem],
    on_progress: Optional[Callable[[int], None]] = None,
    on_item_complete: Optional[Callable[[list[BatchResultItem]], None]] = None,
    *,
    profile: Optional[script_types.ScriptProfile] = None,
    process_fn: Optional[ProcessFn] = None,
    delay: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> list[BatchResultItem]:
    """
    Run the transcript pipeline over items in order.

    Args:
        items: Batch items; updated in place.
        on_progress: Called with the percent complete (0-100) after each pending item.
        on_item_complete: Called with a snapshot of all items after each pending item.
        profile: Script profile for process_transcript (ignored when process_fn is given).
        process_fn: transcript -> ProcessingResult; defaults to process_transcript.
        delay: Seconds to wait after each pending item (default: Config.batch_delay_seconds).
        sleep: Injected for tests.

    Returns:
        The items list (same objects, same order).
    """
    delay = config.batch_delay_seconds if delay is None else delay
    if process_fn is None:
        def process_fn(transcript: str) -> ProcessingResult:
            return process_transcript(transcript, profile=profile)

    results = list(items)
    total = len(results)
    for i, item in enumerate(results):
        if item.processed:
            print(f"[BATCH] Transcript {i + 1}/{total}: already processed, skipping")
            continue

        print(f"[BATCH] Processing transcript {i + 1}/{total}...")
        try:
            result = process_fn(item.transcript)
            if not result.success:
                raise RuntimeError(result.error or "Transcript processing failed")
            item.outline = result.outline or ""
            item.first_sections = result.first_sections or ""
            item.last_sections = result.last_sections or ""
            item.processed = True
            item.error = None
            print(f"[BATCH] Transcript {i + 1}/{total}: done")
        except Exception as e:
            item.error = str(e) or type(e).__name__
            item.processed = False
            print(f"[BATCH] WARNING: Transcript {i + 1}/{total} failed: {item.error}")

        progress = round((i + 1) / total * 100)
        if on_progress:
            on_progress(progress)
        if on_item_complete:
            on_item_complete([copy.deepcopy(r) for r in results])

        if delay > 0 and i < total - 1:
            sleep(delay)

    done = sum(1 for r in results if r.processed)
    failed = sum(1 for r in results if r.status == "error")
    print(f"[BATCH] ✓ Finished: {done} done, {failed} failed, {total - done - failed} pending")
    return results


# ------------- CLI -------------

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Process every transcript in a spreadsheet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Reads the 'transcript' column, writes processed_transcripts.xlsx
  python batch_runner.py transcripts.xlsx

  # Custom output, Word report, Vietnamese template
  python batch_runner.py transcripts.xlsx out.xlsx --docx out.docx --profile national
        """
    )
    parser.add_argument("input", help="Spreadsheet with a 'transcript' column")
    parser.add_argument("output", nargs="?", default="processed_transcripts.xlsx",
                        help="Output spreadsheet (default: processed_transcripts.xlsx)")
    parser.add_argument("--docx", help="Also write all results to a .docx file")
    parser.add_argument("--profile", choices=sorted(script_types.PROFILES), default=config.profile,
                        help=f"Script profile (default: {config.profile})")
    parser.add_argument("--delay", type=float, default=config.batch_delay_seconds,
                        help=f"Seconds to wait between transcripts (default: {config.batch_delay_seconds})")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    import export_utils

    args = parse_args(argv)
    try:
        profile = script_types.get_profile(args.profile)
        items = export_utils.parse_transcript_workbook(Path(args.input).read_bytes())
    except (OSError, ValueError) as e:
        print(f"ERROR: {e}")
        return 1

    print(f"[BATCH] Loaded {len(items)} transcript(s) from {args.input}")
    run_batch(
        items,
        on_progress=lambda pct: print(f"[BATCH] Progress: {pct}%"),
        profile=profile,
        delay=args.delay,
    )

    Path(args.output).write_bytes(export_utils.export_batch_to_xlsx(items))
    print(f"[EXPORT] Spreadsheet: {args.output}")
    if args.docx:
        Path(args.docx).write_bytes(export_utils.build_batch_docx(items))
        print(f"[EXPORT] Document: {args.docx}")
    return 0 if all(item.processed for item in items) else 2


# ------------- ENTRY POINT -------------

if __name__ == "__main__":
    sys.exit(main())
