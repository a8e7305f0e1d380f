"""
Tests for the transcript pipeline in build_script.py.
The generative client is replaced by a scripted fake that answers by prompt type.
"""

import re
import tempfile
import unittest
import sys
from pathlib import Path
from unittest.mock import patch

sys.path.insert(0, str(Path(__file__).parent.parent))

import build_script
import llm_utils
import script_types
from build_script import ProcessingResult, parse_part_count, process_transcript
from conversation_store import ConversationStore
from errors import UpstreamError

CHARACTER_OUTLINE = "1. Introduction (500 words)\n2. Actor A (350 words)\n3. Conclusion (500 words)"
INTRO = "Intro paragraph one.\n\nIntro paragraph two."


class ScriptedModel:
    """Answers each pipeline prompt with a canned response and records what was asked."""

    def __init__(self, count_answer="3", intro=INTRO, fail_on_part=None):
        self.count_answer = count_answer
        self.intro = intro
        self.fail_on_part = fail_on_part
        self.prompts = []
        self.kinds = []

    def __call__(self, full_prompt):
        self.prompts.append(full_prompt)
        prompt = full_prompt.rsplit("Current prompt: ", 1)[-1]
        if "give me the outline" in prompt:
            return self._answer("outline", "Outline v1")
        if "confirm to me what you have learned" in prompt:
            return self._answer("brief", "Brief learned")
        if "generate a **new outline**" in prompt:
            return self._answer("character_outline", CHARACTER_OUTLINE)
        if "Count how many main parts" in prompt:
            return self._answer("count", self.count_answer)
        if "write the first part now" in prompt:
            return self._answer("part_1", self.intro)
        match = re.search(r"write part (\d+) of", prompt)
        if match:
            number = int(match.group(1))
            if number == self.fail_on_part:
                raise UpstreamError("model refused", error_kind="invalid_request")
            return self._answer(f"part_{number}", f"Part {number} text.")
        match = re.search(r"Hãy viết chi tiết phần (\d+)", prompt)
        if match:
            return self._answer(f"part_{match.group(1)}", f"Phần {match.group(1)}.")
        if "Hãy tạo một đề cương" in prompt:
            return self._answer("outline", "Dàn ý tiếng Việt")
        raise AssertionError(f"Unexpected prompt: {prompt[:80]}")

    def _answer(self, kind, text):
        self.kinds.append(kind)
        return text


class PipelineTestCase(unittest.TestCase):

    def setUp(self):
        self.store = ConversationStore()
        self.sleeps = []
        self.steps = []

    def run_pipeline(self, model, profile=None, **kwargs):
        kwargs.setdefault("part_delay", 0)
        kwargs.setdefault("strict_part_count", True)
        return process_transcript(
            "A transcript about actors.",
            profile=profile or script_types.ActorScriptProfile(persist_part_turns=False),
            logger=lambda step, message, data: self.steps.append(step),
            store=self.store,
            generate_fn=model,
            retry_policy=llm_utils.RetryPolicy(max_attempts=1),
            sleep=self.sleeps.append,
            **kwargs,
        )


class TestProcessTranscript(PipelineTestCase):

    def test_full_run_splits_parts_by_chunk_count(self):
        model = ScriptedModel(count_answer="3")
        result = self.run_pipeline(model)

        self.assertTrue(result.success)
        self.assertIsNone(result.error)
        self.assertEqual(result.outline, CHARACTER_OUTLINE)
        self.assertEqual(result.first_sections, INTRO)
        self.assertEqual(result.last_sections, "Part 2 text.\n\nPart 3 text.")
        self.assertEqual(
            model.kinds,
            ["outline", "brief", "character_outline", "count", "part_1", "part_2", "part_3"],
        )
        self.assertEqual(sorted(set(self.steps)), [1, 2, 3, 4, 5, 6, 7])

    def test_later_parts_are_not_kept_in_history(self):
        self.run_pipeline(ScriptedModel(count_answer="3"))
        (conversation_id,) = self.store.active_ids()
        self.assertTrue(conversation_id.startswith("transcript_"))
        # outline, brief, character outline, count, part 1
        self.assertEqual(len(self.store.get(conversation_id).messages), 10)

    def test_persisted_parts_grow_history(self):
        self.run_pipeline(ScriptedModel(count_answer="3"), profile=script_types.ActorScriptProfile(persist_part_turns=True))
        (conversation_id,) = self.store.active_ids()
        self.assertEqual(len(self.store.get(conversation_id).messages), 14)

    def test_history_carries_earlier_steps(self):
        model = ScriptedModel(count_answer="2")
        self.run_pipeline(model)
        count_prompt = model.prompts[3]
        self.assertTrue(count_prompt.startswith("Conversation history:\nUser: "))
        self.assertIn("Assistant: Outline v1", count_prompt)
        self.assertIn("Assistant: Brief learned", count_prompt)

    def test_fixed_delay_between_parts(self):
        self.run_pipeline(ScriptedModel(count_answer="3"), part_delay=1.2)
        self.assertEqual(self.sleeps, [1.2, 1.2])

    def test_empty_transcript(self):
        model = ScriptedModel()
        result = process_transcript("   ", generate_fn=model, store=self.store)
        self.assertFalse(result.success)
        self.assertEqual(result.error, "Transcript is empty")
        self.assertEqual(model.prompts, [])

    def test_upstream_failure_discards_partial_output(self):
        model = ScriptedModel(count_answer="4", fail_on_part=3)
        result = self.run_pipeline(model)
        self.assertFalse(result.success)
        self.assertIn("model refused", result.error)
        self.assertIsNone(result.outline)
        self.assertIsNone(result.first_sections)
        self.assertIsNone(result.last_sections)
        self.assertNotIn("part_4", model.kinds)

    def test_too_short_to_split_fails(self):
        result = self.run_pipeline(ScriptedModel(count_answer="1", intro="Just one paragraph."))
        self.assertFalse(result.success)
        self.assertIn("too short", result.error)


class TestNonNumericPartCount(PipelineTestCase):
    """The model answers the count prompt with words instead of a number."""

    def test_strict_mode_fails_before_writing_parts(self):
        model = ScriptedModel(count_answer="There are many parts")
        result = self.run_pipeline(model, strict_part_count=True)
        self.assertFalse(result.success)
        self.assertIn("number of parts", result.error)
        self.assertNotIn("part_1", model.kinds)

    def test_lenient_mode_writes_only_first_part(self):
        model = ScriptedModel(count_answer="There are many parts")
        result = self.run_pipeline(model, strict_part_count=False)
        self.assertTrue(result.success)
        self.assertEqual(model.kinds[-1], "part_1")
        self.assertEqual(model.kinds.count("part_1"), 1)
        self.assertEqual(result.first_sections, "Intro paragraph one.")
        self.assertEqual(result.last_sections, "Intro paragraph two.")


class TestNationalProfile(PipelineTestCase):

    def test_fixed_parts_with_previous_parts_in_prompt(self):
        model = ScriptedModel()
        result = self.run_pipeline(model, profile=script_types.NationalSubjectProfile(num_parts=3))

        self.assertTrue(result.success)
        self.assertEqual(model.kinds, ["outline", "part_1", "part_2", "part_3"])
        self.assertEqual(result.outline, "Dàn ý tiếng Việt")
        self.assertEqual(result.first_sections, "Phần 1.")
        self.assertEqual(result.last_sections, "Phần 2.\n\nPhần 3.")
        last_prompt = model.prompts[-1].rsplit("Current prompt: ", 1)[-1]
        self.assertIn("Phần 1.\n\nPhần 2.", last_prompt)
        (conversation_id,) = self.store.active_ids()
        self.assertTrue(conversation_id.startswith("vietnamese_actor_"))


class TestParsePartCount(unittest.TestCase):

    def test_leading_integer(self):
        self.assertEqual(parse_part_count("12"), 12)
        self.assertEqual(parse_part_count("  7 parts\n"), 7)
        self.assertEqual(parse_part_count("+4"), 4)

    def test_non_numeric_is_zero(self):
        self.assertEqual(parse_part_count("many"), 0)
        self.assertEqual(parse_part_count(""), 0)
        self.assertEqual(parse_part_count(None), 0)
        self.assertEqual(parse_part_count("Total: 5"), 0)

    def test_negative_is_zero(self):
        self.assertEqual(parse_part_count("-3"), 0)


class TestProcessingResult(unittest.TestCase):

    def test_ok_to_dict(self):
        data = ProcessingResult.ok("O", "F", "L").to_dict()
        self.assertEqual(data, {"success": True, "outline": "O", "firstSections": "F", "lastSections": "L"})

    def test_failure_to_dict(self):
        result = ProcessingResult.failure("")
        self.assertEqual(result.to_dict(), {"success": False, "error": "Unknown error"})


class TestMain(unittest.TestCase):

    def test_writes_txt_and_docx(self):
        with tempfile.TemporaryDirectory() as tmp:
            transcript = Path(tmp) / "transcript.txt"
            transcript.write_text("hello", encoding="utf-8")
            output = Path(tmp) / "out" / "script.txt"
            docx_path = Path(tmp) / "script.docx"

            with patch.object(build_script, "process_transcript", return_value=ProcessingResult.ok("O", "F", "L")):
                code = build_script.main([str(transcript), "--output", str(output), "--docx", str(docx_path)])

            self.assertEqual(code, 0)
            self.assertTrue(output.read_text(encoding="utf-8").startswith("ĐỀ CƯƠNG KỊCH BẢN:"))
            self.assertTrue(docx_path.read_bytes().startswith(b"PK"))

    def test_failure_exit_code(self):
        with tempfile.TemporaryDirectory() as tmp:
            transcript = Path(tmp) / "transcript.txt"
            transcript.write_text("hello", encoding="utf-8")
            with patch.object(build_script, "process_transcript", return_value=ProcessingResult.failure("boom")):
                self.assertEqual(build_script.main([str(transcript), "--output", str(Path(tmp) / "o.txt")]), 1)

    def test_missing_transcript_file(self):
        self.assertEqual(build_script.main(["/nonexistent/transcript.txt"]), 1)

    def test_invalid_profile_setting(self):
        with tempfile.TemporaryDirectory() as tmp:
            transcript = Path(tmp) / "transcript.txt"
            transcript.write_text("hello", encoding="utf-8")
            with patch.object(build_script.config, "profile", "horror"), \
                    patch.object(build_script, "process_transcript") as process:
                self.assertEqual(build_script.main([str(transcript), "--output", str(Path(tmp) / "o.txt")]), 1)
            process.assert_not_called()


if __name__ == "__main__":
    unittest.main()
