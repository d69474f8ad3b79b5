"""
模型回复解析

回复按顺序尝试多种解析策略:
严格JSON -> 正则提取 -> 段落启发式 -> 失败。
某个策略得到的转录长度不足时继续尝试下一个策略。
"""

import json
import re
from dataclasses import dataclass, field
from typing import Callable, List, Optional

from app.core.exceptions import AIServiceException
from app.core.logging import ai_logger as logger
from app.schemas.summary import StructuredSummary, Section, Subsection


@dataclass
class ParsedReply:
    """从模型回复中提取的字段"""
    transcription: str
    notes: str = ""
    summary: str = ""
    key_points: List[str] = field(default_factory=list)
    strategy: str = ""


_FENCED_JSON = re.compile(r"```(?:json)?\s*([\s\S]*?)```", re.IGNORECASE)
_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")

_JSON_STRING_FIELD = r'"{name}"\s*:\s*"((?:[^"\\]|\\.)*)"'
_LABELLED_TRANSCRIPTION = re.compile(
    r"transcription\s*:\s*([\s\S]*?)(?=\n\s*(?:summary|notes|key points)\s*:|$)",
    re.IGNORECASE
)
_LABELLED_NOTES = re.compile(
    r"notes\s*:\s*([\s\S]*?)(?=\n\s*(?:summary|key points)\s*:|$)",
    re.IGNORECASE
)
_LABELLED_SUMMARY = re.compile(
    r"summary\s*:\s*([\s\S]*?)(?=\n\s*(?:notes|key points)\s*:|$)",
    re.IGNORECASE
)

HEURISTIC_MIN_PARAGRAPH = 50


def _as_text(value) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return json.dumps(value, ensure_ascii=False)


def _as_list(value) -> List[str]:
    if isinstance(value, list):
        return [_as_text(v) for v in value if _as_text(v)]
    if isinstance(value, str) and value.strip():
        return [line.lstrip("*- ").strip() for line in value.splitlines() if line.strip()]
    return []


def try_strict_json(reply: str) -> Optional[ParsedReply]:
    """解析JSON对象(可包裹在```代码块中)"""
    candidates = [m.group(1) for m in _FENCED_JSON.finditer(reply)]
    match = _JSON_OBJECT.search(reply)
    if match:
        candidates.append(match.group(0))

    for candidate in candidates:
        try:
            data = json.loads(candidate.strip())
        except ValueError:
            continue
        if not isinstance(data, dict) or "transcription" not in data:
            continue
        return ParsedReply(
            transcription=_as_text(data.get("transcription")),
            notes=_as_text(data.get("notes")),
            summary=_as_text(data.get("summary")),
            key_points=_as_list(data.get("keyPoints") or data.get("key_points")),
            strategy="json"
        )
    return None


def _json_string_field(reply: str, name: str) -> Optional[str]:
    match = re.search(_JSON_STRING_FIELD.format(name=name), reply)
    if not match:
        return None
    try:
        return json.loads(f'"{match.group(1)}"')
    except ValueError:
        return match.group(1)


def try_regex_extraction(reply: str) -> Optional[ParsedReply]:
    """从残缺的JSON或 `TRANSCRIPTION:` 标签格式中提取字段"""
    transcription = _json_string_field(reply, "transcription")
    if transcription is not None:
        return ParsedReply(
            transcription=transcription.strip(),
            notes=(_json_string_field(reply, "notes") or "").strip(),
            summary=(_json_string_field(reply, "summary") or "").strip(),
            strategy="regex"
        )

    match = _LABELLED_TRANSCRIPTION.search(reply)
    if not match:
        return None

    notes = _LABELLED_NOTES.search(reply)
    summary = _LABELLED_SUMMARY.search(reply)
    return ParsedReply(
        transcription=match.group(1).strip(),
        notes=notes.group(1).strip() if notes else "",
        summary=summary.group(1).strip() if summary else "",
        strategy="regex"
    )


def try_paragraph_heuristic(reply: str) -> Optional[ParsedReply]:
    """把第一段足够长的正文段落当作转录"""
    for paragraph in _paragraphs(reply):
        if paragraph.startswith(("{", "[", "```", "#")):
            continue
        if len(paragraph) >= HEURISTIC_MIN_PARAGRAPH:
            return ParsedReply(transcription=paragraph, notes=reply.strip(), strategy="heuristic")
    return None


PARSE_STRATEGIES: List[Callable[[str], Optional[ParsedReply]]] = [
    try_strict_json,
    try_regex_extraction,
    try_paragraph_heuristic,
]


def parse_model_reply(reply: str, min_transcription_length: int) -> ParsedReply:
    """
    依次尝试各解析策略，返回第一个转录长度达标的结果

    Raises:
        AIServiceException: 所有策略都没有得到足够长的转录
    """
    for strategy in PARSE_STRATEGIES:
        parsed = strategy(reply or "")
        if parsed is None:
            continue
        if len(parsed.transcription.strip()) >= min_transcription_length:
            logger.debug(f"模型回复由 {strategy.__name__} 解析成功")
            return parsed
        logger.debug(f"{strategy.__name__} 得到的转录过短 ({len(parsed.transcription.strip())} chars)")

    raise AIServiceException(
        "Insufficient transcription: the model did not return any usable speech"
    )


def _paragraphs(text: str) -> List[str]:
    return [p.strip() for p in re.split(r"\n\s*\n", text or "") if p.strip()]


def _heading(paragraph: str, marker: str):
    """拆分标题段落: 首行标记后的文字为标题，其余行为正文"""
    first, _, rest = paragraph.partition("\n")
    return first[len(marker):].strip(), rest.strip()


def parse_structured_summary(markdown: str) -> StructuredSummary:
    """
    将markdown笔记解析为结构化摘要

    - summary: 第一个不以#开头的段落
    - keyPoints: 第一个包含 "key points"/"main points" 的段落里的 * / - 列表行
    - "## " 段落开启章节，"### " 段落在章节内开启小节
    - 其他段落追加到当前小节或章节(段落 + 空行)，都没有时丢弃
    """
    paragraphs = _paragraphs(markdown)
    result = StructuredSummary()
    if not paragraphs:
        return result

    result.summary = next((p for p in paragraphs if not p.startswith("#")), "")

    key_points_paragraph = next(
        (p for p in paragraphs if "key points" in p.lower() or "main points" in p.lower()),
        None
    )
    if key_points_paragraph:
        result.key_points = [
            re.sub(r"^[*-]\s*", "", line.strip()).strip()
            for line in key_points_paragraph.split("\n")
            if line.strip().startswith(("*", "-"))
        ]

    section: Optional[Section] = None
    subsection: Optional[Subsection] = None
    for paragraph in paragraphs:
        if paragraph.startswith("## "):
            title, body = _heading(paragraph, "## ")
            section = Section(title=title, content=f"{body}\n\n" if body else "")
            result.sections.append(section)
            subsection = None
        elif paragraph.startswith("### ") and section is not None:
            title, body = _heading(paragraph, "### ")
            subsection = Subsection(title=title, content=f"{body}\n\n" if body else "")
            section.subsections.append(subsection)
        elif subsection is not None:
            subsection.content += paragraph + "\n\n"
        elif section is not None:
            section.content += paragraph + "\n\n"

    return result
