"""End-to-end tests: lesson Markdown fixtures through every compiler stage."""

import json
from pathlib import Path

import pytest

from lesson_compiler import compile, compile_with_report, validate
from lesson_compiler.utils.file_io import read_markdown

FIXTURES = Path(__file__).parent.parent / "fixtures"


@pytest.fixture(scope="module")
def full_lesson_source():
    return read_markdown(FIXTURES / "full_lesson.md")


@pytest.fixture(scope="module")
def full_lesson(full_lesson_source):
    return compile(full_lesson_source, source_path="full_lesson.md")


class TestFullLesson:
    """Tests for a lesson using every major construct."""

    def test_compiles_cleanly(self, full_lesson):
        assert full_lesson.success is True
        assert full_lesson.errors == []
        assert full_lesson.warnings == []

    def test_metadata(self, full_lesson):
        metadata = full_lesson.lesson.metadati
        assert metadata.id == "moto-rettilineo"
        assert metadata.titolo == "Il moto rettilineo uniforme"
        assert metadata.materia == "fisica"
        assert metadata.durata == 45
        assert metadata.versione == "1.2"
        assert metadata.tags == ["moto", "velocità"]

    def test_segmentation(self, full_lesson):
        """Test introduction, sections and conclusion."""
        lesson = full_lesson.lesson
        assert [b.contenuto for b in lesson.introduzione] == [
            "In questa lezione studiamo il moto più semplice.",
            "Serve solo una formula.",
        ]
        assert [(s.id, s.titolo) for s in lesson.sezioni] == [
            ("velocita-media", "Velocità media"),
            ("esercizi-guidati", "Esercizi guidati"),
        ]
        assert [b.contenuto for b in lesson.conclusione] == ["Abbiamo visto la legge oraria del moto."]

    def test_flat_section_with_transition(self, full_lesson):
        section = full_lesson.lesson.sezioni[0]
        assert [b.tipo for b in section.blocchi] == ["testo", "formula", "definizione"]
        assert section.transitions == [2]

        formula = section.blocchi[1]
        assert (formula.latex, formula.etichetta) == ("v = s / t", "eq:velocita")

        definition = section.blocchi[2]
        assert definition.termine == "Velocità media"
        assert definition.nota == "Si misura in m/s"
        assert definition.definizione == "Rapporto tra lo spazio percorso e il tempo impiegato."

    def test_section_with_h2_is_one_sequence(self, full_lesson):
        section = full_lesson.lesson.sezioni[1]
        assert len(section.blocchi) == 1
        steps = section.blocchi[0].steps
        assert [s.titolo for s in steps] == [None, "Primo passo", "Secondo passo"]

        first, quiz_step, last = steps
        assert [b.tipo for b in first.blocchi] == ["testo"]
        assert [b.tipo for b in quiz_step.blocchi] == ["testo", "quiz"]
        assert quiz_step.transitions == [1]
        assert [b.tipo for b in last.blocchi] == ["nota", "codice"]

    def test_quiz_has_single_correct_option(self, full_lesson):
        quiz = full_lesson.lesson.sezioni[1].blocchi[0].steps[1].blocchi[1]
        assert [o.testo for o in quiz.opzioni if o.corretta] == ["10 m/s"]
        assert len(quiz.opzioni) == 3
        assert quiz.spiegazione == "v = 100 / 10 = 10 m/s"
        assert quiz.difficolta.value == "facile"

    def test_note_and_code(self, full_lesson):
        note, code = full_lesson.lesson.sezioni[1].blocchi[0].steps[2].blocchi
        assert note.variante.value == "attenzione"
        assert (code.linguaggio, code.codice) == ("python", "v = s / t")

    def test_resources_collected_across_document(self, full_lesson):
        """Test that risorsa directives from every part end up in risorse only."""
        resources = full_lesson.lesson.risorse
        assert [(r.tipo.value, r.titolo) for r in resources] == [
            ("libro", "Fisica di base"),
            ("video", "Video sul moto"),
            ("esercizi", "Esercizi online"),
        ]
        assert resources[0].url == "https://example.org/fisica"

    def test_json_output(self, full_lesson):
        data = json.loads(full_lesson.to_json())
        assert data["success"] is True
        assert data["lesson"]["sezioni"][1]["blocchi"][0]["tipo"] == "sequenza"
        assert "difficolta" in json.dumps(data)

    def test_compilation_is_deterministic(self, full_lesson_source):
        first = compile(full_lesson_source, source_path="full_lesson.md")
        second = compile(full_lesson_source, source_path="full_lesson.md")
        assert first.to_json() == second.to_json()

    def test_strict_mode_is_clean_too(self, full_lesson_source):
        assert compile(full_lesson_source, strict=True).success is True

    def test_crlf_source_compiles_the_same(self, full_lesson, full_lesson_source):
        """Test that Windows line endings give the same lesson."""
        crlf = compile(full_lesson_source.replace("\n", "\r\n"), source_path="full_lesson.md")
        assert crlf.warnings == []
        assert crlf.lesson_dict() == full_lesson.lesson_dict()


class TestInvalidFrontmatter:
    def test_single_fatal_error(self):
        result = compile(read_markdown(FIXTURES / "invalid_frontmatter.md"))
        assert result.success is False
        assert result.lesson is None
        assert [e.code for e in result.errors] == ["E008"]
        assert result.errors[0].location.start.line == 1


class TestNoFrontmatter:
    def test_lenient(self):
        result = compile(read_markdown(FIXTURES / "no_frontmatter.md"))
        assert result.success is True
        assert sorted(w.code for w in result.warnings) == ["W001", "W004"]
        assert result.lesson.sezioni[0].blocchi[1].tipo == "direttiva"

    def test_strict(self):
        result = compile(read_markdown(FIXTURES / "no_frontmatter.md"), strict=True)
        assert result.success is False
        assert sorted(e.code for e in result.errors) == ["E001", "W001"]


class TestReportAndValidate:
    def test_compile_with_report(self):
        source = read_markdown(FIXTURES / "invalid_frontmatter.md")
        result, report = compile_with_report(source, source_path="invalid_frontmatter.md")
        assert result.success is False
        assert "error[E008]" in report
        assert "--> invalid_frontmatter.md:1:1" in report
        assert report.endswith("Compilation failed: 1 error(s)")

    def test_validate(self, full_lesson_source):
        report = validate(full_lesson_source)
        assert report.valid is True
        assert report.errors == []

    def test_validate_invalid(self):
        report = validate(":::json\n{rotto\n:::")
        assert report.valid is False
        assert "E006" in [e.code for e in report.errors]
