INTERVIEW_TYPE_LABELS = {
    "technical": "technical",
    "hr": "behavioral / HR",
    "gd": "group discussion",
}


def _type_label(interview_type: str) -> str:
    return INTERVIEW_TYPE_LABELS.get(str(interview_type), str(interview_type))


def build_question_prompts(
    interview_type: str,
    job_description: str,
    experience_level: str,
    target_role: str,
    count: int,
) -> tuple[str, str]:
    system_prompt = f"""
You are an expert interview question generator. Generate {count} interview questions for:
- Interview Type: {_type_label(interview_type)}
- Job Description: {job_description}
- Experience Level: {experience_level}
- Target Role: {target_role}

For each question provide the question text, a question type (behavioral,
technical, situational, ...), a difficulty (easy, medium or hard) and a
comprehensive expected answer that shows the ideal response.

Return STRICT JSON only in this format:
{{
  "questions": [
    {{
      "questionText": "string",
      "questionType": "string",
      "difficulty": "easy|medium|hard",
      "expectedAnswer": "string"
    }}
  ]
}}
"""
    user_prompt = (
        f"Generate {count} {_type_label(interview_type)} interview questions "
        f"for a {experience_level} level {target_role} position."
    )
    return system_prompt, user_prompt


def build_evaluation_prompts(
    question: str,
    user_answer: str,
    expected_answer: str,
    question_type: str,
    difficulty: str,
) -> tuple[str, str]:
    system_prompt = f"""
You are an expert interview evaluator. Judge the candidate's answer on:
1. Relevance to the question
2. Completeness
3. Technical accuracy (if applicable)
4. Communication clarity
5. Depth of understanding

Question Type: {question_type}
Difficulty Level: {difficulty}

Return STRICT JSON only in this format:
{{
  "score": 0-100,
  "feedback": "feedback explaining the score",
  "strengths": ["string"],
  "improvements": ["string"]
}}
"""
    user_prompt = f"""
Question: {question}
Expected Answer: {expected_answer}
Candidate's Answer: {user_answer}

Evaluate this answer and provide a score with feedback.
"""
    return system_prompt, user_prompt


def build_review_prompts(session_summary: dict, answers: list[dict], overall_score: int) -> tuple[str, str]:
    """
    Prompts for the end-of-session review. Called once per completed session
    (and again only when the user retries a failed review).
    """
    system_prompt = f"""
You are an expert interview coach giving feedback on a full mock interview.

Provide an overall assessment, key strengths, areas for improvement,
specific recommendations and a detailed analysis.

Rules:
- Be professional and encouraging
- Do NOT mention AI, models, or internal metrics

The candidate's overall score was {overall_score}/100.

Return STRICT JSON only in this format:
{{
  "overallScore": {overall_score},
  "strengths": ["string"],
  "weaknesses": ["string"],
  "recommendations": ["string"],
  "aiAnalysis": "string"
}}
"""
    duration_minutes = int(session_summary.get("duration_seconds") or 0) // 60
    lines = [
        f"Interview Type: {_type_label(session_summary.get('interview_type', ''))}",
        f"Target Role: {session_summary.get('target_role', '')}",
        f"Experience Level: {session_summary.get('experience_level', '')}",
        f"Duration: {duration_minutes} minutes",
        "",
        "Questions and Answers:",
    ]
    for index, item in enumerate(answers, start=1):
        lines.extend([
            f"Q{index}: {item.get('question', '')}",
            f"Answer: {item.get('user_answer', '')}",
            f"Score: {item.get('score', 0)}/100",
            "",
        ])
    lines.append("Please provide comprehensive feedback for this interview performance.")
    return system_prompt, "\n".join(lines)
