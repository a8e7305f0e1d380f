"""
Prompt builders for transcript-to-script generation.
Every prompt the pipeline sends is assembled here so profiles only choose which ones to use.
"""
from typing import Optional


# ------------- ACTOR PROFILE (default) -------------

SCRIPT_BRIEF = """🎬 YouTube Video Script Brief: Exploring the Lives of Deceased Actors

Channel Theme:
Delve into the captivating stories of deceased actors, highlighting their cinematic achievements, personal lives, controversies, and enduring legacies.

🖋️ Writing Style:
Tone: Blend nostalgia with depth and a touch of sensationalism to captivate the audience.
Narrative Approach: Craft emotionally resonant stories that offer in-depth analyses and explore the personal facets of the actors' lives.
Content Balance: Present a balanced view by discussing both their accomplishments and controversies, providing a comprehensive perspective.
Language: Use expressive and engaging language suitable for voice narration, ensuring smooth and emotive delivery.

📚 Content Structure:
Introduction (500–700 words):
- Introduce the film and its significance in cinematic history.
- Tease intriguing and possibly controversial stories related to the film and its main cast.
- Pose a compelling question to pique interest, such as, "Where are these actors now?"
- Encourage viewers to subscribe for more in-depth stories.

Actor Profiles (300–400 words each):
- Biography: Detail the actor's birthdate, family background, and early life circumstances.
- Career Beginnings: Discuss how they entered the film industry and their journey to the featured film.
- Role in the Film: Analyze their performance, critical reception, and impact on their career.
- Post-Film Trajectory: Explore subsequent career developments, including successes, shifts, or declines.
- Personal Life: Delve into their private life, including relationships, conflicts, and lesser-known facts.
- Legacy and Death: Provide details on their passing, age at death, cause, and how they are remembered today.

Conclusion (300–500 words):
- Summarize the film's impact and the enduring legacy of its cast.
- Reflect on who achieved lasting fame, who faded into obscurity, and who left the industry.
- Invite viewers to subscribe for more captivating stories.

🎤 Presentation Guidelines:
Narration: Ensure the script is written for fluent and emotional delivery by the narrator.
Visuals: No need to suggest visuals; focus solely on crafting a compelling narrative.

🔄 Workflow:
- After completing each section, pause to confirm if you should proceed to the next.
- Maintain an engaging storytelling style, avoiding dry summaries.
- Avoid repetitive information across sections to keep the content fresh and engaging.
- Refrain from using symbols or formatting that may disrupt the flow of narration.

⚠️ Important Notes:
- Aim to uncover and include lesser-known facts, rumors, or intriguing anecdotes to enhance the story's appeal.
- Ensure all information is presented in a seamless narrative without bullet points or abrupt transitions.
- Avoid bolding titles within the script, except for main section headings."""


def get_pure_narration_rules() -> str:
    """Narration-only constraint shared by every part prompt."""
    return """IMPORTANT: Write ONLY the narrator's dialogue. DO NOT include any scene descriptions, camera directions, transitions (like 'Open on...' or 'Transition to...'), or technical notes. Do not include any text in parentheses describing visuals or actions. Write the script as pure narration that can be read directly by a voice actor without any production notes."""


def build_outline_prompt(transcript: str) -> str:
    """Step 1: ask for an outline of the raw transcript."""
    return f"{transcript}\n\nRead carefully and give me the outline of the script."


def build_script_brief_prompt(brief: str = SCRIPT_BRIEF) -> str:
    """Step 2: have the model internalize the style/structure brief and acknowledge it."""
    return (
        "This is the prompt I need you to learn to write, learn the prompt and "
        f"confirm to me what you have learned.\n\n{brief}"
    )


def build_character_outline_prompt(
    brief_ack: str,
    outline: str,
    min_actors: int = 15,
    max_actors: int = 18,
    words_per_actor: int = 350,
    intro_words: int = 500,
    conclusion_words: int = 500,
) -> str:
    """Step 3: re-outline so every section covers exactly one actor."""
    low_total = min_actors * words_per_actor + intro_words + conclusion_words
    high_total = max_actors * words_per_actor + intro_words + conclusion_words
    return f"""Based on the previous outline and this script brief:

{brief_ack}

And this outline:

{outline}

Please generate a **new outline** that focuses on **{min_actors} to {max_actors} main characters (actors)** from the original list.

For each character, I want a **dedicated section of approximately {words_per_actor} words** — **please keep this length consistent for every individual character**.

The total article should be around **{low_total}-{high_total} words** ({words_per_actor} words for each character).

Please format the outline with clear numbering like this:
1. Introduction ({intro_words} words)
2. [Actor Name 1] ({words_per_actor} words)
3. [Actor Name 2] ({words_per_actor} words)
...and so on for all characters
[N]. Conclusion ({conclusion_words} words)

IMPORTANT REQUIREMENTS:
- Only include actual actors from the original list - NO placeholder sections
- Each numbered section must be a real actor with their actual name
- Do not include any sections marked as "Add another actor" or similar placeholders
- The total number of sections should be exactly: 1 (Introduction) + number of actual actors + 1 (Conclusion)

Also, include:
- An introduction of around **{intro_words} words**
- A conclusion of around **{conclusion_words} words**

Once the entire outline is complete, please **stop** and **notify me** — **do not proceed to write the full content yet**.
"""


def build_count_parts_prompt(character_outline: str) -> str:
    """Step 4: ask for the number of sections as a bare integer."""
    return f"""Given this character outline:

{character_outline}

Count how many main parts it contains. A valid part is either:
- Introduction
- Conclusion
- One section per actor (if present)

Return ONLY the total number of parts as a number. Do not include any notes, formatting, or extra characters. Example of correct output: 5"""


def build_first_part_prompt(character_outline: str, total_parts: int) -> str:
    """Step 5: the introduction."""
    return f"""Based on this character-focused outline:

{character_outline}

There are {total_parts} parts to write. Please write the first part now (which should be the Introduction section from the outline). Start by clearly identifying which section of the outline you are writing, then write that section fully. Strictly follow the structure and content of the character outline. Make it detailed and engaging, following the script brief guidelines and word count suggestions from the outline.

{get_pure_narration_rules()}"""


def build_next_part_prompt(character_outline: str, part_number: int, total_parts: int, tolerance: float = 0.10) -> str:
    """
    Step 6: parts 2..N.

    Only the outline is referenced (not earlier parts) so the prompt stays bounded.
    """
    pct = int(round(tolerance * 100))
    return f"""I need you to write part {part_number} of {total_parts} based on this character-focused outline:

{character_outline}

You are writing part {part_number}, which should be the next section in the outline after the previous parts.

Start by clearly identifying which **specific section or character** from the outline you are writing now, then write that section **fully and completely**.

⚠️ IMPORTANT INSTRUCTIONS:
- Follow the **word count guidance** from the outline. For example, if a section is suggested to be ~350 words, then your writing must be **within ±{pct}%** of that.
- **Maintain the narrative voice and tone** established in the script brief.
- Write **ONLY** the narrator's dialogue.
  - ❌ DO NOT include scene descriptions, camera directions, transitions, or any technical script formatting.
  - ✅ Write as **pure narration**, suitable to be read out loud directly by a voice actor.
"""


# ------------- NATIONAL-SUBJECT PROFILE (Vietnamese template) -------------

NATIONAL_STYLE_TEMPLATE = """Tôi muốn bạn đóng vai trò là một người viết kịch bản chuyên sâu về cuộc đời các nghệ sĩ, tuân thủ nghiêm ngặt các hướng dẫn về phong cách và quy trình làm việc tôi cung cấp:

🎬 Hướng Dẫn Viết Kịch Bản Video YouTube

🖋️ Phong Cách Viết:
- Giọng điệu: Kết hợp giữa hoài niệm, chiều sâu và một chút giật gân để thu hút khán giả
- Cách kể chuyện: Xây dựng những câu chuyện cảm xúc, phân tích sâu sắc và khám phá các khía cạnh cá nhân
- Cân bằng nội dung: Trình bày một cách cân bằng giữa thành tựu và tranh cãi
- Ngôn ngữ: Sử dụng ngôn ngữ biểu cảm và hấp dẫn, phù hợp cho việc thuyết minh

🎤 Hướng Dẫn Trình Bày:
- Thuyết minh: Đảm bảo kịch bản được viết để người thuyết minh có thể truyền tải một cách lưu loát và đầy cảm xúc
- Hình ảnh: Không cần đề xuất hình ảnh; tập trung hoàn toàn vào việc xây dựng câu chuyện hấp dẫn

🔄 Quy Trình Làm Việc:
- Sau khi hoàn thành mỗi phần, tạm dừng để xác nhận xem có nên tiếp tục phần tiếp theo không
- Duy trì phong cách kể chuyện hấp dẫn, tránh tóm tắt khô khan
- Tránh lặp lại thông tin giữa các phần để giữ cho nội dung luôn mới mẻ và hấp dẫn
- Tránh sử dụng ký hiệu hoặc định dạng có thể làm gián đoạn dòng chảy của thuyết minh

⚠️ Ghi Chú Quan Trọng:
- Nhắm đến việc khám phá và đưa vào những sự thật ít người biết, tin đồn hoặc giai thoại hấp dẫn
- Đảm bảo tất cả thông tin được trình bày trong một câu chuyện liền mạch, không sử dụng dấu đầu dòng hoặc chuyển đoạn đột ngột"""


def build_national_outline_prompt(transcript: str, num_parts: int = 8, words_per_part: int = 750) -> str:
    """Outline step of the national-subject profile: template plus a fixed part/word plan."""
    total_words = num_parts * words_per_part
    return f"""{transcript}

{NATIONAL_STYLE_TEMPLATE}

Hãy tạo một đề cương chi tiết với {num_parts} phần cho kịch bản này, mỗi phần PHẢI đạt chính xác {words_per_part} từ (tổng cộng {total_words} từ). Các phần phải được đánh số rõ ràng từ 1 đến {num_parts} và mỗi phần phải có tiêu đề cụ thể."""


def build_national_part_prompt(outline: str, part_number: int, previous_parts: Optional[str] = None,
                               words_per_part: int = 750) -> str:
    """One part of the national-subject profile; carries the outline and all earlier parts."""
    return f"""Dựa vào transcript, đề cương và các phần trước đó sau:

{outline}

{previous_parts or ""}

Hãy viết chi tiết phần {part_number} của kịch bản.

⚠️ YÊU CẦU BẮT BUỘC VỀ SỐ TỪ:
- Phần này PHẢI đạt chính xác {words_per_part} từ
- Không được ít hơn hoặc nhiều hơn {words_per_part} từ

Viết bằng tiếng Việt, không sử dụng ký tự đặc biệt, không đánh số, không đánh dấu đầu dòng. Viết liền mạch như một câu chuyện. Đảm bảo phần này có tiêu đề rõ ràng và nội dung phù hợp với đề cương.

Sau khi viết xong, hãy đếm và xác nhận số từ của phần này."""
