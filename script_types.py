"""
Pipeline profiles.
A profile decides which prompts the transcript pipeline sends and how many parts it writes;
the pipeline itself (build_script.process_transcript) is shared by all of them.
"""
from abc import ABC, abstractmethod
from typing import Optional
import prompt_builders


class ScriptProfile(ABC):
    """Base class for script profiles (actor script, national-subject script, etc.)."""

    name: str = ""
    conversation_tag: str = "transcript"

    @abstractmethod
    def get_outline_prompt(self, transcript: str) -> str:
        """Prompt for the first outline of the transcript."""
        pass

    @abstractmethod
    def get_part_prompt(self, part_number: int, total_parts: int, outline: str, previous_parts: str) -> str:
        """Prompt for one part (1-based) of the final script."""
        pass

    def uses_brief(self) -> bool:
        """Whether the brief / character-outline / part-count steps run."""
        return False

    def get_fixed_part_count(self) -> Optional[int]:
        """Part count known up front, or None when it is counted from the outline."""
        return None

    def should_persist_part(self, part_number: int) -> bool:
        """Whether the exchange for this part is kept in conversation history."""
        return True

    def get_brief_prompt(self) -> str:
        raise NotImplementedError(f"{type(self).__name__} has no brief step")

    def get_character_outline_prompt(self, brief_ack: str, outline: str) -> str:
        raise NotImplementedError(f"{type(self).__name__} has no character outline step")

    def get_count_parts_prompt(self, outline: str) -> str:
        raise NotImplementedError(f"{type(self).__name__} does not count parts")


class ActorScriptProfile(ScriptProfile):
    """Default profile: one section per actor, part count read back from the character outline."""

    name = "actor"
    conversation_tag = "transcript"

    def __init__(self, persist_part_turns: Optional[bool] = None, words_per_actor: int = 350,
                 min_actors: int = 15, max_actors: int = 18):
        if persist_part_turns is None:
            from config import config
            persist_part_turns = config.persist_part_turns
        self.persist_part_turns = persist_part_turns
        self.words_per_actor = words_per_actor
        self.min_actors = min_actors
        self.max_actors = max_actors

    def uses_brief(self) -> bool:
        return True

    def get_outline_prompt(self, transcript: str) -> str:
        return prompt_builders.build_outline_prompt(transcript)

    def get_brief_prompt(self) -> str:
        return prompt_builders.build_script_brief_prompt()

    def get_character_outline_prompt(self, brief_ack: str, outline: str) -> str:
        return prompt_builders.build_character_outline_prompt(
            brief_ack, outline,
            min_actors=self.min_actors,
            max_actors=self.max_actors,
            words_per_actor=self.words_per_actor,
        )

    def get_count_parts_prompt(self, outline: str) -> str:
        return prompt_builders.build_count_parts_prompt(outline)

    def get_part_prompt(self, part_number: int, total_parts: int, outline: str, previous_parts: str) -> str:
        # Earlier parts are not sent; the outline alone steers each part.
        if part_number == 1:
            return prompt_builders.build_first_part_prompt(outline, total_parts)
        return prompt_builders.build_next_part_prompt(outline, part_number, total_parts)

    def should_persist_part(self, part_number: int) -> bool:
        """The introduction stays in history; later parts only when persist_part_turns is set."""
        return part_number == 1 or self.persist_part_turns


class NationalSubjectProfile(ScriptProfile):
    """Vietnamese template: fixed number of equal-length parts, each written with all earlier parts in view."""

    name = "national"
    conversation_tag = "vietnamese_actor"

    def __init__(self, num_parts: int = 8, words_per_part: int = 750):
        self.num_parts = num_parts
        self.words_per_part = words_per_part

    def get_outline_prompt(self, transcript: str) -> str:
        return prompt_builders.build_national_outline_prompt(transcript, self.num_parts, self.words_per_part)

    def get_fixed_part_count(self) -> Optional[int]:
        return self.num_parts

    def get_part_prompt(self, part_number: int, total_parts: int, outline: str, previous_parts: str) -> str:
        return prompt_builders.build_national_part_prompt(outline, part_number, previous_parts, self.words_per_part)


PROFILES = {
    ActorScriptProfile.name: ActorScriptProfile,
    NationalSubjectProfile.name: NationalSubjectProfile,
}


def get_profile(name: Optional[str] = None, **kwargs) -> ScriptProfile:
    """Instantiate a profile by name ("actor" or "national"); None means the configured default."""
    if name is None:
        from config import config
        name = config.profile
    key = str(name).strip().lower()
    if key not in PROFILES:
        raise ValueError(f"Unknown script profile '{name}'. Choose one of: {', '.join(sorted(PROFILES))}")
    return PROFILES[key](**kwargs)
