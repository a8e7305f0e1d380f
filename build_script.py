import os
import re
import sys
import time
import traceback
import argparse
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Optional

from dotenv import load_dotenv

import llm_utils
import script_types
from build_scripts_utils import format_script_for_copy, script_filename, split_sections
from config import config, debug_enabled
from conversation_store import ConversationStore, new_conversation_id, send_prompt_with_history

load_dotenv()

SCRIPTS_DIR = Path("scripts")

StepLogger = Callable[[int, str, Optional[dict]], None]


class PipelineStage(Enum):
    OUTLINE_DRAFT = "outline_draft"
    BRIEF_APPLIED = "brief_applied"
    CHARACTER_OUTLINE = "character_outline"
    PART_COUNT = "part_count"
    PART = "part"
    SPLIT = "split"
    DONE = "done"
    FAILED = "failed"


@dataclass
class ProcessingResult:
    """Outcome of one pipeline run. Build with ok() or failure() so the two never mix."""

    success: bool
    outline: Optional[str] = None
    first_sections: Optional[str] = None
    last_sections: Optional[str] = None
    error: Optional[str] = None

    @classmethod
    def ok(cls, outline: str, first_sections: str, last_sections: str) -> "ProcessingResult":
        return cls(success=True, outline=outline, first_sections=first_sections, last_sections=last_sections)

    @classmethod
    def failure(cls, error: str) -> "ProcessingResult":
        return cls(success=False, error=error or "Unknown error")

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            return {
                "success": True,
                "outline": self.outline,
                "firstSections": self.first_sections,
                "lastSections": self.last_sections,
            }
        return {"success": False, "error": self.error}


class PipelineError(RuntimeError):
    """The pipeline reached a state it cannot continue from (e.g. no parts to write)."""

    def __init__(self, message: str, stage: PipelineStage):
        super().__init__(message)
        self.stage = stage


_LEADING_INT_RE = re.compile(r"^[+-]?\d+")


def parse_part_count(response: str) -> int:
    """
    Read the part count the model answered with.

    Takes the leading integer of the trimmed answer ("12", "12 parts"); anything
    else, including a negative number, counts as 0.
    """
    match = _LEADING_INT_RE.match((response or "").strip())
    if not match:
        return 0
    return max(0, int(match.group(0)))


class _ScriptSession:
    """One conversation: every prompt of a pipeline run goes through here."""

    def __init__(self, conversation_id: str, store: Optional[ConversationStore],
                 generate_fn: Optional[Callable[[str], str]], retry_policy: Optional[llm_utils.RetryPolicy],
                 sleep: Callable[[float], None]):
        self.conversation_id = conversation_id
        self.store = store
        self.generate_fn = generate_fn
        self.retry_policy = retry_policy
        self.sleep = sleep

    def send(self, prompt: str, save_to_history: bool = True) -> str:
        return send_prompt_with_history(
            prompt,
            self.conversation_id,
            store=self.store,
            save_to_history=save_to_history,
            generate_fn=self.generate_fn,
            retry_policy=self.retry_policy,
            sleep=self.sleep,
        )


def _preview(text: str, limit: int = 100) -> str:
    text = (text or "").strip().replace("\n", " ")
    return text if len(text) <= limit else text[:limit] + "..."


def process_transcript(
    transcript: str,
    profile: Optional[script_types.ScriptProfile] = None,
    logger: Optional[StepLogger] = None,
    *,
    store: Optional[ConversationStore] = None,
    generate_fn: Optional[Callable[[str], str]] = None,
    retry_policy: Optional[llm_utils.RetryPolicy] = None,
    part_delay: Optional[float] = None,
    strict_part_count: Optional[bool] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> ProcessingResult:
    """
    Turn a transcript into an outline plus a script split into two halves.

    Steps (actor profile): outline -> brief -> character outline -> part count ->
    part 1 -> parts 2..N -> split. Profiles without a brief skip straight from the
    outline to a fixed number of parts. Any failure returns ProcessingResult.failure
    and discards the parts written so far.
    """
    profile = profile or script_types.get_profile()
    part_delay = config.part_delay_seconds if part_delay is None else part_delay
    strict_part_count = config.strict_part_count if strict_part_count is None else strict_part_count

    def log(step: int, message: str, data: Optional[dict] = None) -> None:
        print(f"[STEP {step}] {message}")
        if data and debug_enabled() and isinstance(data.get("response"), str):
            print(f"[STEP {step}] Preview: {_preview(data['response'])}")
        if logger:
            logger(step, message, data)

    if not transcript or not str(transcript).strip():
        return ProcessingResult.failure("Transcript is empty")

    session = _ScriptSession(
        new_conversation_id(profile.conversation_tag),
        store, generate_fn, retry_policy, sleep,
    )
    stage = PipelineStage.OUTLINE_DRAFT

    try:
        # Step 1: outline of the raw transcript
        log(1, "Processing: Creating outline...")
        outline = session.send(profile.get_outline_prompt(transcript))
        log(1, "Completed: Outline created.", {"response": outline})

        if profile.uses_brief():
            # Step 2: brief, kept as context only
            stage = PipelineStage.BRIEF_APPLIED
            log(2, "Processing: Applying YouTube Script Brief template...")
            brief_ack = session.send(profile.get_brief_prompt())
            log(2, "Completed: YouTube Script Brief template applied.")

            # Step 3: one section per actor
            stage = PipelineStage.CHARACTER_OUTLINE
            log(3, "Processing: Creating character-focused outline...")
            outline = session.send(profile.get_character_outline_prompt(brief_ack, outline))
            log(3, "Completed: Character-focused outline created.", {"response": outline})

            # Step 4: how many parts to write
            stage = PipelineStage.PART_COUNT
            log(4, "Processing: Counting number of parts...")
            count_response = session.send(profile.get_count_parts_prompt(outline))
            total_parts = parse_part_count(count_response)
            log(4, f"Completed: Found {total_parts} parts to generate.", {"response": count_response})
        else:
            total_parts = profile.get_fixed_part_count() or 0

        if total_parts <= 0:
            if strict_part_count:
                raise PipelineError(
                    "Could not determine the number of parts to generate from the outline",
                    PipelineStage.PART_COUNT,
                )
            print("[WARNING] Part count is 0; only the first part will be generated")

        # Steps 5-6: parts, one request each
        stage = PipelineStage.PART
        parts: list[str] = []
        last_part = max(total_parts, 1)
        for part_number in range(1, last_part + 1):
            if part_number > 1 and part_delay > 0:
                sleep(part_delay)
            step = 5 if part_number == 1 else 6
            log(step, f"Processing: Generating part {part_number} of {total_parts}...")
            prompt = profile.get_part_prompt(part_number, total_parts, outline, "\n\n".join(parts))
            part_text = session.send(prompt, save_to_history=profile.should_persist_part(part_number))
            parts.append(part_text)
            log(step, f"Completed part {part_number} of {total_parts}.", {"response": part_text})

        # Step 7: split by chunk count
        stage = PipelineStage.SPLIT
        log(7, "Processing: Splitting content into sections...")
        first_sections, last_sections = split_sections("\n\n".join(parts))
        log(7, f"First sections length: {len(first_sections)} characters")
        log(7, f"Last sections length: {len(last_sections)} characters")
        if not first_sections or not last_sections:
            raise PipelineError("Generated script is too short to split into two sections", stage)
        log(7, "Completed: Content split into first and last sections.")

        stage = PipelineStage.DONE
        return ProcessingResult.ok(outline, first_sections, last_sections)
    except Exception as e:
        failed_stage = e.stage if isinstance(e, PipelineError) else stage
        print(f"[ERROR] Transcript processing failed at {failed_stage.value}: {e}")
        if debug_enabled():
            traceback.print_exc()
        return ProcessingResult.failure(str(e))


# ------------- CLI -------------

def _read_transcript(source: str) -> str:
    if source == "-":
        return sys.stdin.read()
    return Path(source).read_text(encoding="utf-8")


def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Generate a long-form actor script from a YouTube transcript",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Default actor profile, writes scripts/kich_ban_<date>.txt
  python build_script.py transcript.txt

  # Vietnamese 8-part template, also export a Word document
  python build_script.py transcript.txt --profile national --docx scripts/script.docx

  # Read the transcript from stdin
  cat transcript.txt | python build_script.py -
        """
    )
    parser.add_argument("transcript", help="Transcript text file ('-' for stdin)")
    parser.add_argument("--profile", choices=sorted(script_types.PROFILES), default=config.profile,
                        help=f"Script profile (default: {config.profile})")
    parser.add_argument("--output", "-o", help="Output .txt file (default: scripts/kich_ban_<date>.txt)")
    parser.add_argument("--docx", help="Also write the script as a .docx file")
    parser.add_argument("--part-delay", type=float, default=config.part_delay_seconds,
                        help=f"Seconds to wait between part requests (default: {config.part_delay_seconds})")
    parser.add_argument("--allow-zero-parts", action="store_true",
                        help="Do not fail when the part count cannot be parsed; write only the first part")
    parser.add_argument("--persist-parts", action="store_true",
                        help="Keep every generated part in the conversation history (actor profile)")
    parser.add_argument("--debug", action="store_true", help="Verbose response previews (DEBUG=1)")
    return parser.parse_args(argv)


def main(argv=None) -> int:
    args = parse_args(argv)

    if args.debug:
        os.environ["DEBUG"] = "1"
        print("[MODE] Debug logging enabled")

    try:
        transcript = _read_transcript(args.transcript)
    except OSError as e:
        print(f"ERROR: Could not read transcript: {e}")
        return 1

    profile_kwargs = {"persist_part_turns": True} if args.persist_parts and args.profile == "actor" else {}
    try:
        profile = script_types.get_profile(args.profile, **profile_kwargs)
    except ValueError as e:
        print(f"ERROR: {e}")
        return 1

    print(f"\n{'='*60}")
    print(f"[SCRIPT] Profile: {profile.name}")
    print(f"[CONFIG] Model: {llm_utils.get_text_model_display()}")
    print(f"[CONFIG] Part delay: {args.part_delay}s, strict part count: {'No' if args.allow_zero_parts else 'Yes'}")
    print(f"{'='*60}")

    result = process_transcript(
        transcript,
        profile=profile,
        part_delay=args.part_delay,
        strict_part_count=not args.allow_zero_parts,
    )
    if not result.success:
        print(f"\n[ERROR] {result.error}")
        return 1

    output_file = Path(args.output) if args.output else SCRIPTS_DIR / script_filename()
    output_file.parent.mkdir(parents=True, exist_ok=True)
    output_file.write_text(
        format_script_for_copy(result.outline, result.first_sections, result.last_sections),
        encoding="utf-8",
    )

    print("\n" + "="*60)
    print("SUCCESS!")
    print("="*60)
    print(f"   Script: {output_file}")

    if args.docx:
        import export_utils
        docx_path = Path(args.docx)
        docx_path.parent.mkdir(parents=True, exist_ok=True)
        docx_path.write_bytes(export_utils.build_script_docx(
            result.outline, result.first_sections, result.last_sections,
        ))
        print(f"   Document: {docx_path}")
    return 0


# ------------- ENTRY POINT -------------

if __name__ == "__main__":
    sys.exit(main())
