"""Unit tests for the semantic stage: sections, transitions and metadata."""

import pytest

from lesson_compiler.compiler import compile
from lesson_compiler.compiler.lesson_compiler import heading_level

FRONTMATTER = "---\nid: t\ntitle: Test\nsubject: fisica\ntopic: moto\nlevel: base\n---\n\n"


def first_section(body):
    result = compile(FRONTMATTER + "# Sezione\n\n" + body)
    return result, result.lesson.sezioni[0]


class TestHeadingLevel:
    @pytest.mark.parametrize("depth,level", [(1, 2), (2, 3), (3, 4), (4, 4), (6, 4)])
    def test_clamped(self, depth, level):
        assert heading_level(depth) == level


class TestSections:
    """Tests for section compilation."""

    def test_transitions_become_indices(self):
        """Test that transitions index into blocchi and are not blocks."""
        result, section = first_section("A\n\n>>>\n\nB\n\n>>>\n\n>>>\n\nC")
        assert [b.tipo for b in section.blocchi] == ["testo", "testo", "testo"]
        assert section.transitions == [1, 2, 2]
        assert result.warnings == []

    def test_section_without_transitions(self):
        _, section = first_section("Solo testo")
        assert section.transitions is None

    def test_h2_headings_make_one_sequence(self):
        """Test steps between H2 headings, with an untitled leading step."""
        _, section = first_section("Premessa\n\n## Uno\n\nA\n\n>>>\n\nB\n\n## Due\n\nC")
        assert len(section.blocchi) == 1
        sequence = section.blocchi[0]
        assert sequence.tipo == "sequenza"
        assert [(s.id, s.titolo) for s in sequence.steps] == [
            ("step-1", None),
            ("uno", "Uno"),
            ("due", "Due"),
        ]
        assert [b.contenuto for b in sequence.steps[1].blocchi] == ["A", "B"]
        assert sequence.steps[1].transitions == [1]
        assert sequence.steps[2].transitions is None

    def test_transition_before_first_h2_is_kept(self):
        """Test that a >>> between the H1 and the first H2 opens the first step."""
        result, section = first_section(">>>\n\n## Passo\n\nTesto")
        steps = section.blocchi[0].steps
        assert [(s.titolo, len(s.blocchi)) for s in steps] == [("Passo", 1)]
        assert steps[0].transitions == [0]
        assert result.warnings == []

    def test_every_transition_is_counted(self):
        _, section = first_section(">>>\n\n## Uno\n\nA\n\n>>>\n\n## Due\n\nB\n\n>>>")
        steps = section.blocchi[0].steps
        assert sum(len(s.transitions or []) for s in steps) == 3
        assert [s.transitions for s in steps] == [[0, 1], [1]]

    def test_h3_becomes_titolo(self):
        _, section = first_section("### Dettaglio\n\n#### Nota a margine")
        assert [(b.tipo, b.livello, b.testo) for b in section.blocchi] == [
            ("titolo", 4, "Dettaglio"),
            ("titolo", 4, "Nota a margine"),
        ]

    def test_basic_blocks(self):
        _, section = first_section("Testo\n\n$$x^2$$\n\n1. uno\n2. due\n\n![Grafico](g.png)")
        assert [b.tipo for b in section.blocchi] == ["testo", "formula", "elenco", "immagine"]
        assert section.blocchi[1].display is True
        assert section.blocchi[2].ordinato is True
        assert section.blocchi[3].alt == "Grafico"

    def test_image_without_alt_warns(self):
        result, section = first_section("![](g.png)")
        assert section.blocchi[0].src == "g.png"
        assert [w.code for w in result.warnings] == ["W004"]

    def test_empty_introduction_and_conclusion_are_omitted(self):
        result = compile(FRONTMATTER + "# Sezione\n\nTesto")
        assert result.lesson.introduzione is None
        assert result.lesson.conclusione is None
        assert result.lesson.risorse == []
        data = result.lesson_dict()
        assert "introduzione" not in data
        assert data["risorse"] == []


class TestMetadata:
    """Tests for frontmatter → metadati."""

    def test_field_mapping(self):
        source = (
            "---\nid: moto\ntitle: Moto\nsubtitle: Uniforme\nsubject: fisica\ntopic: cinematica\n"
            "level: base\nduration: 30\nauthor: Prof\nversion: 1.2\ntags: algebra\n"
            "objectives: [capire, calcolare]\n---\n\n# Sezione\n\nTesto"
        )
        result = compile(source)
        metadata = result.lesson.metadati
        assert result.success is True
        assert result.warnings == []
        assert metadata.id == "moto"
        assert metadata.titolo == "Moto"
        assert metadata.sottotitolo == "Uniforme"
        assert metadata.materia == "fisica"
        assert metadata.argomento == "cinematica"
        assert metadata.livello == "base"
        assert metadata.durata == 30
        assert metadata.autore == "Prof"
        assert metadata.versione == "1.2"
        assert metadata.tags == ["algebra"]
        assert metadata.obiettivi == ["capire", "calcolare"]

    def test_missing_frontmatter_warns(self):
        result = compile("# Sezione\n\nTesto")
        assert result.success is True
        assert result.lesson.metadati is None
        assert [w.code for w in result.warnings] == ["W004"]

    def test_missing_frontmatter_strict(self):
        result = compile("# Sezione\n\nTesto", strict=True)
        assert result.success is False
        assert [e.code for e in result.errors] == ["E001"]

    def test_missing_required_keys(self):
        result = compile("---\nid: x\ntitle: T\n---\n\nTesto")
        assert [w.code for w in result.warnings] == ["W004", "W004", "W004"]
        assert "subject" in result.warnings[0].message
        assert result.success is True

    def test_missing_required_keys_strict(self):
        result = compile("---\nid: x\ntitle: T\nsubject: s\ntopic: t\n---\n\nTesto", strict=True)
        assert [e.code for e in result.errors] == ["E002"]
        assert "level" in result.errors[0].message

    def test_invalid_metadata_value(self):
        """Test that a wrongly typed value is E009 and drops the metadata."""
        result = compile(FRONTMATTER.replace("level: base\n", "level: base\nduration: lunga\n"))
        assert result.success is False
        assert [e.code for e in result.errors] == ["E009"]
        assert "durata" in result.errors[0].message
        assert result.lesson.metadati is None
