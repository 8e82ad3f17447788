"""
Dialogue parser - compiles dialogue scripts into Dialogue graphs.

Script format:

```
TRIGGER tavern                      # optional, before the first NODE
REQUIRE notFlag seenIntro           # optional, before the first NODE

NODE start
  BARTENDER: @bartender.greeting
  VOICE bartender_01.ogg
  SET flag seenIntro

  CHOICE "Pour me a drink."
    REQUIRE variableGreaterThan gold 4
    ADD variable gold -5
    GOTO drink
  END

  CHOICE @choice.leave
    GOTO location market
  END

NODE drink
  NARRATOR: "The ale is warm and flat."
  IF hasFlag knowsSecret
    GOTO whisper
  END
  GOTO farewell
```

Keywords are case-sensitive. Comments start at an unquoted ``#``.
Compilation is all-or-nothing: the first malformed line raises ParseError.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

from inkwell.dialog.model import Choice, ConditionalBranch, Dialogue, DialogueNode
from inkwell.rules import conditions as c
from inkwell.rules import effects as e


logger = logging.getLogger(__name__)


class ParseError(ValueError):
    """
    Raised when dialogue source does not compile.

    Attributes:
        line_number: 1-based line of the offending token (None for whole-file errors)
        line: The offending source line, comments stripped
    """

    def __init__(self, message: str, line_number: Optional[int] = None, line: str = ""):
        self.message = message
        self.line_number = line_number
        self.line = line
        if line_number is None:
            super().__init__(message)
        else:
            super().__init__(f"Line {line_number}: {message} ({line!r})")


@dataclass
class Token:
    """A non-blank source line with its comment removed."""
    line: str
    line_number: int
    indent: int = 0

    @property
    def keyword(self) -> str:
        return self.line.split(None, 1)[0]

    @property
    def rest(self) -> str:
        parts = self.line.split(None, 1)
        return parts[1].strip() if len(parts) > 1 else ""

    def error(self, message: str) -> ParseError:
        return ParseError(message, self.line_number, self.line)


# Argument kinds for positional DSL arguments
ID = "id"
NUMBER = "number"
INTEGER = "integer"
VALUE = "value"      # number when it looks like one, otherwise string
BOOLEAN = "boolean"


# condition name -> (model, [(field, kind), ...])
CONDITION_SIGNATURES: dict[str, tuple[type, list[tuple[str, str]]]] = {
    'hasFlag': (c.HasFlagCondition, [('flag', ID)]),
    'notFlag': (c.NotFlagCondition, [('flag', ID)]),
    'hasItem': (c.HasItemCondition, [('item_id', ID)]),
    'notItem': (c.NotItemCondition, [('item_id', ID)]),
    'variableEquals': (c.VariableEqualsCondition, [('variable', ID), ('value', VALUE)]),
    'variableGreaterThan': (c.VariableGreaterThanCondition, [('variable', ID), ('value', NUMBER)]),
    'variableLessThan': (c.VariableLessThanCondition, [('variable', ID), ('value', NUMBER)]),
    'atLocation': (c.AtLocationCondition, [('location_id', ID)]),
    'questAtStage': (c.QuestAtStageCondition, [('quest_id', ID), ('stage_id', ID)]),
    'characterAt': (c.CharacterAtCondition, [('character_id', ID), ('location_id', ID)]),
    'characterInParty': (c.CharacterInPartyCondition, [('character_id', ID)]),
    'relationshipAbove': (c.RelationshipAboveCondition, [('character_id', ID), ('value', INTEGER)]),
    'relationshipBelow': (c.RelationshipBelowCondition, [('character_id', ID), ('value', INTEGER)]),
    'timeIs': (c.TimeIsCondition, [('start_hour', INTEGER), ('end_hour', INTEGER)]),
    'itemAt': (c.ItemAtCondition, [('item_id', ID), ('location_id', ID)]),
    'roll': (c.RollCondition, [('min', INTEGER), ('max', INTEGER), ('threshold', INTEGER)]),
}

# (KEYWORD, target) -> (model, [(field, kind), ...])
EFFECT_SIGNATURES: dict[tuple[str, str], tuple[type, list[tuple[str, str]]]] = {
    ('SET', 'flag'): (e.SetFlagEffect, [('flag', ID)]),
    ('SET', 'variable'): (e.SetVariableEffect, [('variable', ID), ('value', VALUE)]),
    ('SET', 'questStage'): (e.SetQuestStageEffect, [('quest_id', ID), ('stage_id', ID)]),
    ('SET', 'characterLocation'): (e.SetCharacterLocationEffect, [('character_id', ID), ('location_id', ID)]),
    ('SET', 'relationship'): (e.SetRelationshipEffect, [('character_id', ID), ('value', INTEGER)]),
    ('SET', 'characterStat'): (e.SetCharacterStatEffect, [('character_id', ID), ('stat', ID), ('value', VALUE)]),
    ('SET', 'mapEnabled'): (e.SetMapEnabledEffect, [('enabled', BOOLEAN)]),
    ('CLEAR', 'flag'): (e.ClearFlagEffect, [('flag', ID)]),
    ('ADD', 'variable'): (e.AddVariableEffect, [('variable', ID), ('value', NUMBER)]),
    ('ADD', 'item'): (e.AddItemEffect, [('item_id', ID)]),
    ('ADD', 'journalEntry'): (e.AddJournalEntryEffect, [('entry_id', ID)]),
    ('ADD', 'toParty'): (e.AddToPartyEffect, [('character_id', ID)]),
    ('ADD', 'relationship'): (e.AddRelationshipEffect, [('character_id', ID), ('value', INTEGER)]),
    ('ADD', 'characterStat'): (e.AddCharacterStatEffect, [('character_id', ID), ('stat', ID), ('value', NUMBER)]),
    ('REMOVE', 'item'): (e.RemoveItemEffect, [('item_id', ID)]),
    ('REMOVE', 'fromParty'): (e.RemoveFromPartyEffect, [('character_id', ID)]),
    ('MOVE', 'item'): (e.MoveItemEffect, [('item_id', ID), ('location_id', ID)]),
    ('GOTO', 'location'): (e.GoToLocationEffect, [('location_id', ID)]),
    ('ADVANCE', 'time'): (e.AdvanceTimeEffect, [('hours', INTEGER)]),
    ('START', 'dialogue'): (e.StartDialogueEffect, [('dialogue_id', ID)]),
    ('END', 'dialogue'): (e.EndDialogueEffect, []),
}

# KEYWORD -> (model, [(field, kind), ...]) for effects without a target word
SIMPLE_EFFECT_SIGNATURES: dict[str, tuple[type, list[tuple[str, str]]]] = {
    'MUSIC': (e.PlayMusicEffect, [('track', ID)]),
    'SOUND': (e.PlaySoundEffect, [('sound', ID)]),
    'VIDEO': (e.PlayVideoEffect, [('file', ID)]),
    'INTERLUDE': (e.ShowInterludeEffect, [('interlude_id', ID)]),
    'ROLL': (e.RollEffect, [('variable', ID), ('min', INTEGER), ('max', INTEGER)]),
}

STRUCTURE_KEYWORDS = frozenset({
    'NODE', 'CHOICE', 'IF', 'END', 'GOTO', 'TRIGGER', 'REQUIRE', 'VOICE', 'PORTRAIT',
})


def strip_comment(line: str) -> str:
    """
    Remove a trailing ``#`` comment, honoring quotes and ``\\#`` escapes.

    Raises:
        ValueError: If a quote is left open
    """
    in_quote = False
    escaped = False
    for i, char in enumerate(line):
        if escaped:
            escaped = False
        elif char == '\\':
            escaped = True
        elif char == '"':
            in_quote = not in_quote
        elif char == '#' and not in_quote:
            return line[:i]
    if in_quote:
        raise ValueError("unterminated quoted text")
    return line


def _unescape(text: str) -> str:
    return re.sub(r'\\(["#\\])', r'\1', text)


def parse_number(raw: str) -> int | float:
    """Parse an int or float literal. Raises ValueError otherwise."""
    if DialogueParser.INT_PATTERN.match(raw):
        return int(raw)
    if DialogueParser.FLOAT_PATTERN.match(raw):
        return float(raw)
    raise ValueError(f"expected a number, got {raw!r}")


def _convert(raw: str, kind: str) -> Any:
    if kind == ID:
        return raw
    if kind == NUMBER:
        return parse_number(raw)
    if kind == INTEGER:
        if not DialogueParser.INT_PATTERN.match(raw):
            raise ValueError(f"expected a whole number, got {raw!r}")
        return int(raw)
    if kind == BOOLEAN:
        if raw not in ('true', 'false'):
            raise ValueError(f"expected true or false, got {raw!r}")
        return raw == 'true'
    # VALUE
    try:
        return parse_number(raw)
    except ValueError:
        return raw


def _build(model: type, signature: list[tuple[str, str]], args: list[str], name: str) -> Any:
    if len(args) != len(signature):
        expected = " ".join(f"<{field_name}>" for field_name, _ in signature)
        raise ValueError(f"'{name}' takes {len(signature)} argument(s): {name} {expected}".rstrip())
    values = {
        field_name: _convert(raw, kind)
        for (field_name, kind), raw in zip(signature, args)
    }
    return model(**values)


def parse_text(raw: str) -> str:
    """
    Parse a text field.

    - ``@key``   -> ``@key`` (resolved against the locale at snapshot time)
    - ``"text"`` -> ``text`` (delimiters stripped, ``\\"`` unescaped)
    - ``"@text"`` -> ``@@text`` (a literal @, left alone by the resolver)
    - ``text``   -> ``text``

    Raises:
        ValueError: On malformed quotes, or unquoted text containing ``:``
    """
    text = raw.strip()
    if not text:
        raise ValueError("missing text")

    if text.startswith('"'):
        if len(text) < 2 or not text.endswith('"') or text.endswith('\\"'):
            raise ValueError("quoted text must end with a closing quote")
        inner = text[1:-1]
        if re.search(r'(?<!\\)"', inner):
            raise ValueError("unexpected quote inside quoted text")
        inner = _unescape(inner)
        if inner.startswith('@'):
            # Literal text, not a key
            return '@' + inner
        return inner

    if text.startswith('@'):
        if not DialogueParser.KEY_PATTERN.match(text):
            raise ValueError(f"invalid localization key {text!r} (quote text that starts with @)")
        return text

    if ':' in text:
        raise ValueError("text containing ':' must be quoted")
    if '"' in text:
        raise ValueError("unexpected quote in unquoted text")
    return _unescape(text)


def parse_condition(text: str) -> c.Condition:
    """
    Parse a condition string.

    Examples:
        "hasFlag metBartender" -> HasFlagCondition(flag="metBartender")
        "variableGreaterThan gold 10" -> VariableGreaterThanCondition(variable="gold", value=10)

    Raises:
        ValueError: On an unknown condition or malformed arguments
    """
    parts = text.split()
    if not parts:
        raise ValueError("missing condition")

    name, args = parts[0], parts[1:]
    signature = CONDITION_SIGNATURES.get(name)
    if signature is None:
        raise ValueError(f"Unknown condition type: {name}")

    model, fields = signature
    return _build(model, fields, args, name)


def parse_effect(text: str) -> e.Effect:
    """
    Parse an effect line.

    Examples:
        "SET flag metBartender" -> SetFlagEffect(flag="metBartender")
        "ADD variable gold -50" -> AddVariableEffect(variable="gold", value=-50)
        "NOTIFY @quest.started" -> NotifyEffect(message="@quest.started")

    Raises:
        ValueError: On an unknown keyword or malformed arguments
    """
    stripped = text.strip()
    parts = stripped.split()
    if not parts:
        raise ValueError("missing effect")

    keyword = parts[0]

    if keyword == 'NOTIFY':
        return e.NotifyEffect(message=parse_text(stripped[len('NOTIFY'):]))

    if keyword in SIMPLE_EFFECT_SIGNATURES:
        model, fields = SIMPLE_EFFECT_SIGNATURES[keyword]
        return _build(model, fields, parts[1:], keyword)

    if len(parts) < 2:
        raise ValueError(f"Unknown effect keyword: {keyword}")

    signature = EFFECT_SIGNATURES.get((keyword, parts[1]))
    if signature is None:
        if keyword in {k for k, _ in EFFECT_SIGNATURES}:
            raise ValueError(f"Unknown {keyword} effect: {parts[1]}")
        raise ValueError(f"Unknown effect keyword: {keyword}")

    model, fields = signature
    return _build(model, fields, parts[2:], f"{keyword} {parts[1]}")


@dataclass
class _NodeBuilder:
    """Mutable accumulator for a node while its lines are read."""
    id: str
    token: Token
    speaker: Optional[str] = None
    text: str = ""
    has_speaker_line: bool = False
    voice: Optional[str] = None
    portrait: Optional[str] = None
    effects: list = field(default_factory=list)
    choices: list[Choice] = field(default_factory=list)
    next: Optional[str] = None
    conditional_next: list[ConditionalBranch] = field(default_factory=list)

    def build(self) -> DialogueNode:
        return DialogueNode(
            id=self.id,
            speaker=self.speaker,
            text=self.text,
            voice=self.voice,
            portrait=self.portrait,
            effects=self.effects,
            choices=self.choices,
            next=self.next,
            conditional_next=self.conditional_next,
        )


class DialogueParser:
    """
    Compiles dialogue scripts.

    Single pass: tokenize (strip comments and blank lines), then a recursive
    descent keyed on each line's leading keyword. NODE, CHOICE and IF open
    productions; CHOICE and IF blocks close with a bare END.
    """

    NODE_ID_PATTERN = re.compile(r'^[A-Za-z0-9_.\-]+$')
    SPEAKER_PATTERN = re.compile(r'^([A-Za-z_][A-Za-z0-9_\-]*)\s*:(.*)$')
    KEY_PATTERN = re.compile(r'^@[A-Za-z0-9_.\-]+$')
    INT_PATTERN = re.compile(r'^[+-]?\d+$')
    FLOAT_PATTERN = re.compile(r'^[+-]?(\d+\.\d*|\.\d+)$')

    def parse_file(self, path: str | Path) -> Dialogue:
        """Parse a dialogue script file. The dialogue id is the file stem."""
        path = Path(path)
        with open(path, 'r', encoding='utf-8') as f:
            content = f.read()
        return self.parse_string(content, path.stem)

    def parse_string(self, content: str, dialogue_id: str) -> Dialogue:
        """
        Parse a dialogue script string.

        Raises:
            ParseError: On the first malformed line
        """
        tokens = self.tokenize(content)

        trigger_location: Optional[str] = None
        top_conditions: list = []
        nodes: list[DialogueNode] = []
        seen_ids: set[str] = set()

        i = 0
        while i < len(tokens):
            token = tokens[i]
            keyword = token.keyword

            if keyword == 'NODE':
                node, i = self._parse_node(tokens, i)
                if node.id in seen_ids:
                    raise token.error(f"duplicate node id '{node.id}'")
                seen_ids.add(node.id)
                nodes.append(node)
            elif keyword == 'TRIGGER':
                if trigger_location is not None:
                    raise token.error("TRIGGER may only appear once")
                trigger_location = self._single_argument(token)
                i += 1
            elif keyword == 'REQUIRE':
                top_conditions.append(self._condition(token, token.rest))
                i += 1
            else:
                raise token.error(f"unexpected '{keyword}' outside a NODE")

        if not nodes:
            raise ParseError(f"dialogue '{dialogue_id}' has no NODE")

        dialogue = Dialogue(
            id=dialogue_id,
            start_node=nodes[0].id,
            nodes=nodes,
            trigger_location=trigger_location,
            conditions=top_conditions,
        )

        logger.debug(
            f"Compiled dialogue '{dialogue_id}': {len(nodes)} nodes, "
            f"start '{dialogue.start_node}'"
        )
        return dialogue

    def tokenize(self, content: str) -> list[Token]:
        """Split source into tokens, dropping comments and blank lines."""
        tokens = []
        for index, original in enumerate(content.splitlines(), start=1):
            try:
                without_comment = strip_comment(original)
            except ValueError as exc:
                raise ParseError(str(exc), index, original.strip()) from None

            line = without_comment.strip()
            if not line:
                continue

            indent = len(without_comment) - len(without_comment.lstrip())
            tokens.append(Token(line=line, line_number=index, indent=indent))
        return tokens

    # Productions

    def _parse_node(self, tokens: list[Token], start: int) -> tuple[DialogueNode, int]:
        token = tokens[start]
        node_id = self._single_argument(token)
        if not self.NODE_ID_PATTERN.match(node_id):
            raise token.error(f"invalid node id '{node_id}'")

        node = _NodeBuilder(id=node_id, token=token)
        i = start + 1

        while i < len(tokens):
            current = tokens[i]
            keyword = current.keyword

            if keyword == 'NODE':
                break

            if keyword == 'CHOICE':
                choice, i = self._parse_choice(tokens, i, node)
                node.choices.append(choice)
                continue

            if keyword == 'IF':
                branch, i = self._parse_if(tokens, i)
                node.conditional_next.append(branch)
                continue

            if keyword == 'GOTO':
                target = current.rest
                if target.split()[:1] == ['location']:
                    node.effects.extend(self._goto_location(current))
                else:
                    if node.next is not None:
                        raise current.error("node already has a GOTO")
                    node.next = self._single_argument(current)
            elif keyword == 'VOICE':
                if node.voice is not None:
                    raise current.error("node already has a VOICE")
                node.voice = self._single_argument(current)
            elif keyword == 'PORTRAIT':
                if node.portrait is not None:
                    raise current.error("node already has a PORTRAIT")
                node.portrait = self._single_argument(current)
            elif keyword == 'TRIGGER':
                raise current.error("TRIGGER must precede the first NODE")
            elif keyword == 'REQUIRE':
                raise current.error("REQUIRE outside a CHOICE must precede the first NODE")
            elif keyword == 'END' and not current.rest:
                raise current.error("END without an open CHOICE or IF block")
            else:
                speaker_match = self._speaker_match(current)
                if speaker_match:
                    self._apply_speaker_line(node, current, speaker_match)
                else:
                    node.effects.append(self._effect(current))
            i += 1

        return node.build(), i

    def _parse_choice(
        self,
        tokens: list[Token],
        start: int,
        node: _NodeBuilder,
    ) -> tuple[Choice, int]:
        token = tokens[start]
        text = self._text(token, token.rest)

        conditions: list = []
        effects: list = []
        next_node: Optional[str] = None
        closed_by_goto = False

        i = start + 1
        while True:
            if i >= len(tokens):
                raise token.error("CHOICE block is missing its END")
            current = tokens[i]
            keyword = current.keyword

            if current.line == 'END':
                i += 1
                break
            if closed_by_goto:
                raise current.error("GOTO must be the last line of a CHOICE block")

            if keyword == 'REQUIRE':
                conditions.append(self._condition(current, current.rest))
            elif keyword == 'GOTO':
                if current.rest.split()[:1] == ['location']:
                    effects.extend(self._goto_location(current))
                else:
                    next_node = self._single_argument(current)
                closed_by_goto = True
            elif keyword in ('NODE', 'CHOICE', 'IF', 'TRIGGER', 'VOICE', 'PORTRAIT'):
                raise current.error(f"'{keyword}' is not allowed inside a CHOICE block")
            elif self._speaker_match(current):
                raise current.error("speaker lines are not allowed inside a CHOICE block")
            else:
                effects.append(self._effect(current))
            i += 1

        choice = Choice(
            id=self._choice_id(node, text),
            text=text,
            conditions=conditions,
            effects=effects,
            next=next_node,
        )
        return choice, i

    def _parse_if(self, tokens: list[Token], start: int) -> tuple[ConditionalBranch, int]:
        token = tokens[start]
        condition = self._condition(token, token.rest)

        effects: list = []
        next_node: Optional[str] = None
        has_goto = False

        i = start + 1
        while True:
            if i >= len(tokens):
                raise token.error("IF block is missing its END")
            current = tokens[i]
            keyword = current.keyword

            if current.line == 'END':
                i += 1
                break
            if has_goto:
                raise current.error("GOTO must be the last line of an IF block")

            if keyword == 'GOTO':
                if current.rest.split()[:1] == ['location']:
                    effects.extend(self._goto_location(current))
                else:
                    next_node = self._single_argument(current)
                has_goto = True
            elif keyword in STRUCTURE_KEYWORDS and keyword != 'END':
                raise current.error(f"'{keyword}' is not allowed inside an IF block")
            elif self._speaker_match(current):
                raise current.error("speaker lines are not allowed inside an IF block")
            else:
                effects.append(self._effect(current))
            i += 1

        if not has_goto:
            raise token.error("IF block must end with a GOTO")

        return ConditionalBranch(condition=condition, effects=effects, next=next_node), i

    # Line helpers

    def _speaker_match(self, token: Token) -> Optional[re.Match]:
        match = self.SPEAKER_PATTERN.match(token.line)
        if match and match.group(1) in STRUCTURE_KEYWORDS:
            return None
        return match

    def _apply_speaker_line(self, node: _NodeBuilder, token: Token, match: re.Match) -> None:
        if node.has_speaker_line:
            raise token.error("node already has a speaker line")
        name = match.group(1)
        node.speaker = None if name == 'NARRATOR' else name.lower()
        node.text = self._text(token, match.group(2))
        node.has_speaker_line = True

    def _goto_location(self, token: Token) -> list:
        parts = token.rest.split()
        if len(parts) != 2:
            raise token.error("GOTO location takes exactly one location id")
        return [
            e.GoToLocationEffect(location_id=parts[1]),
            e.EndDialogueEffect(),
        ]

    def _single_argument(self, token: Token) -> str:
        parts = token.rest.split()
        if len(parts) != 1:
            raise token.error(f"{token.keyword} takes exactly one argument")
        return parts[0]

    def _text(self, token: Token, raw: str) -> str:
        try:
            return parse_text(raw)
        except ValueError as exc:
            raise token.error(str(exc)) from None

    def _condition(self, token: Token, text: str) -> c.Condition:
        try:
            return parse_condition(text)
        except ValueError as exc:
            raise token.error(str(exc)) from None

    def _effect(self, token: Token) -> e.Effect:
        try:
            return parse_effect(token.line)
        except ValueError as exc:
            raise token.error(str(exc)) from None

    def _choice_id(self, node: _NodeBuilder, text: str) -> str:
        sanitized = re.sub(r'[^a-z0-9]', '_', re.sub(r'[@"]', '', text).lower())[:30]
        base = f"{node.id}_choice_{sanitized}"
        taken = {choice.id for choice in node.choices}
        choice_id = base
        suffix = 2
        while choice_id in taken:
            choice_id = f"{base}_{suffix}"
            suffix += 1
        return choice_id


_parser = DialogueParser()


def parse_dialogue(content: str, dialogue_id: str) -> Dialogue:
    """
    Compile dialogue source into a Dialogue.

    Args:
        content: Script source
        dialogue_id: Registry id for the dialogue

    Raises:
        ParseError: On the first malformed line
    """
    return _parser.parse_string(content, dialogue_id)
