"""Pydantic models for the compiled lesson document.

Field names follow the JSON contract consumed by the lesson renderer
(``sezioni``, ``blocchi``, ``tipo`` ...). Blocks form a discriminated union on
``tipo``; serialize with ``model_dump(mode="json", by_alias=True,
exclude_none=True)``.
"""

import json
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator

from lesson_compiler.models.diagnostics import CompilerError, CompilerWarning


# ============================================================================
# Enums
# ============================================================================


class NotaVariante(str, Enum):
    """Kind of a note box."""

    INFO = "info"
    ATTENZIONE = "attenzione"
    SUGGERIMENTO = "suggerimento"
    RICORDA = "ricorda"


class CalloutVariante(str, Enum):
    OBIETTIVO = "obiettivo"
    PREREQUISITI = "prerequisiti"
    MATERIALI = "materiali"
    TEMPO = "tempo"


class Difficolta(str, Enum):
    """Quiz difficulty."""

    FACILE = "facile"
    MEDIA = "media"
    DIFFICILE = "difficile"


class TipoRisorsa(str, Enum):
    """Kind of an external resource."""

    LIBRO = "libro"
    VIDEO = "video"
    SITO = "sito"
    ESERCIZI = "esercizi"


# ============================================================================
# Blocks
# ============================================================================


class BloccoBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class BloccoTesto(BloccoBase):
    tipo: Literal["testo"] = "testo"
    contenuto: str


class BloccoTitolo(BloccoBase):
    tipo: Literal["titolo"] = "titolo"
    livello: Literal[2, 3, 4]
    testo: str


class BloccoFormula(BloccoBase):
    tipo: Literal["formula"] = "formula"
    latex: str
    display: bool = True
    etichetta: Optional[str] = None


class BloccoElenco(BloccoBase):
    tipo: Literal["elenco"] = "elenco"
    ordinato: bool = False
    elementi: List[str] = Field(default_factory=list)


class BloccoImmagine(BloccoBase):
    tipo: Literal["immagine"] = "immagine"
    src: Optional[str] = None
    asset_id: Optional[str] = Field(None, alias="assetId")
    alt: str = ""
    didascalia: Optional[str] = None
    larghezza: Optional[int] = None


class BloccoNota(BloccoBase):
    tipo: Literal["nota"] = "nota"
    variante: NotaVariante = NotaVariante.INFO
    contenuto: str = ""


class BloccoCallout(BloccoBase):
    tipo: Literal["callout"] = "callout"
    variante: CalloutVariante = CalloutVariante.OBIETTIVO
    titolo: Optional[str] = None
    contenuto: str = ""


class BloccoDefinizione(BloccoBase):
    tipo: Literal["definizione"] = "definizione"
    termine: str
    definizione: str = ""
    nota: Optional[str] = None


class BloccoTeorema(BloccoBase):
    tipo: Literal["teorema"] = "teorema"
    nome: Optional[str] = None
    enunciato: str
    dimostrazione: Optional[str] = None


class BloccoEsempio(BloccoBase):
    tipo: Literal["esempio"] = "esempio"
    titolo: Optional[str] = None
    problema: str
    soluzione: str
    nota: Optional[str] = None


class BloccoAttivita(BloccoBase):
    tipo: Literal["attivita"] = "attivita"
    titolo: Optional[str] = None
    consegna: str = ""
    nota: Optional[str] = None


class BloccoQuestion(BloccoBase):
    tipo: Literal["question"] = "question"
    title: Optional[str] = None
    question: str
    answer: str


class BloccoBrainstorming(BloccoBase):
    """Free-text box where students jot down ideas; ``persistId`` keeps the answer."""

    tipo: Literal["brainstorming"] = "brainstorming"
    title: str
    placeholder: Optional[str] = None
    height_px: Optional[int] = Field(None, alias="heightPx")
    persist_id: Optional[str] = Field(None, alias="persistId")
    persist_default: Optional[bool] = Field(None, alias="persistDefault")


class OpzioneQuiz(BaseModel):
    testo: str
    corretta: bool = False


class BloccoQuiz(BloccoBase):
    """Multiple-choice question; exactly one option is expected to be correct."""

    tipo: Literal["quiz"] = "quiz"
    domanda: str
    opzioni: List[OpzioneQuiz] = Field(default_factory=list)
    spiegazione: str = ""
    difficolta: Optional[Difficolta] = None


class BloccoCitazione(BloccoBase):
    tipo: Literal["citazione"] = "citazione"
    testo: str
    autore: Optional[str] = None
    fonte: Optional[str] = None


class BloccoTabella(BloccoBase):
    tipo: Literal["tabella"] = "tabella"
    intestazione: List[str] = Field(default_factory=list)
    righe: List[List[str]] = Field(default_factory=list)
    didascalia: Optional[str] = None


class BloccoCodice(BloccoBase):
    tipo: Literal["codice"] = "codice"
    linguaggio: str = "text"
    codice: str = ""


class BloccoCollegamento(BloccoBase):
    tipo: Literal["collegamento"] = "collegamento"
    lezione_id: str = Field(..., alias="lezioneId")
    testo: str
    descrizione: Optional[str] = None


class BloccoSeparatore(BloccoBase):
    tipo: Literal["separatore"] = "separatore"


class BloccoVideo(BloccoBase):
    tipo: Literal["video"] = "video"
    src: Optional[str] = None
    asset_id: Optional[str] = Field(None, alias="assetId")
    titolo: Optional[str] = None


class BloccoDemo(BloccoBase):
    tipo: Literal["demo"] = "demo"
    componente: str
    props: Optional[Dict[str, Any]] = None
    titolo: Optional[str] = None


class BloccoDirettiva(BloccoBase):
    """Directive with no dedicated block type, kept verbatim for the renderer."""

    tipo: Literal["direttiva"] = "direttiva"
    nome: str
    variante: Optional[str] = None
    attributi: Dict[str, Any] = Field(default_factory=dict)
    contenuto: str = ""


class SequenzaStep(BaseModel):
    """One step of a sequence; ``transitions`` index into ``blocchi``."""

    id: Optional[str] = None
    titolo: Optional[str] = None
    transitions: Optional[List[int]] = None
    blocchi: List["Blocco"] = Field(default_factory=list)


class BloccoSequenza(BloccoBase):
    tipo: Literal["sequenza"] = "sequenza"
    titolo: Optional[str] = None
    steps: List[SequenzaStep] = Field(default_factory=list)


class PassoStepByStep(BaseModel):
    titolo: str
    contenuto: str


class BloccoStepByStep(BloccoBase):
    tipo: Literal["step-by-step"] = "step-by-step"
    titolo: Optional[str] = None
    step: List[PassoStepByStep] = Field(default_factory=list)


Blocco = Annotated[
    Union[
        BloccoTesto,
        BloccoTitolo,
        BloccoFormula,
        BloccoElenco,
        BloccoImmagine,
        BloccoNota,
        BloccoCallout,
        BloccoDefinizione,
        BloccoTeorema,
        BloccoEsempio,
        BloccoAttivita,
        BloccoQuestion,
        BloccoBrainstorming,
        BloccoQuiz,
        BloccoCitazione,
        BloccoTabella,
        BloccoCodice,
        BloccoCollegamento,
        BloccoSeparatore,
        BloccoVideo,
        BloccoDemo,
        BloccoDirettiva,
        BloccoSequenza,
        BloccoStepByStep,
    ],
    Field(discriminator="tipo"),
]

SequenzaStep.model_rebuild()

# Validates raw block dictionaries (``:::json`` escape hatch).
BLOCCHI_ADAPTER = TypeAdapter(List[Blocco])


# ============================================================================
# Lesson Document
# ============================================================================


class MetadatiLezione(BaseModel):
    """Lesson metadata taken from the frontmatter.

    Presence of keys is checked by the compiler, not here, so every field is
    optional; types are still validated.
    """

    model_config = ConfigDict(coerce_numbers_to_str=True)

    id: Optional[str] = None
    titolo: Optional[str] = None
    sottotitolo: Optional[str] = None
    materia: Optional[str] = None
    argomento: Optional[str] = None
    livello: Optional[str] = None
    durata: Optional[int] = Field(None, ge=0, description="Duration in minutes")
    autore: Optional[str] = None
    versione: Optional[str] = None
    tags: Optional[List[str]] = None
    prerequisiti: Optional[List[str]] = None
    obiettivi: Optional[List[str]] = None

    @field_validator("tags", "prerequisiti", "obiettivi", mode="before")
    @classmethod
    def wrap_single_string(cls, v: Any) -> Any:
        """Accept ``tags: algebra`` as shorthand for a one-element list."""
        if isinstance(v, str):
            return [v]
        return v


class SezioneLezione(BaseModel):
    id: str
    titolo: str
    blocchi: List[Blocco] = Field(default_factory=list)
    transitions: Optional[List[int]] = None


class Risorsa(BaseModel):
    """External reference collected from ``risorsa`` directives."""

    tipo: TipoRisorsa = TipoRisorsa.SITO
    titolo: str = ""
    url: Optional[str] = None
    descrizione: Optional[str] = None


class Lezione(BaseModel):
    metadati: Optional[MetadatiLezione] = None
    introduzione: Optional[List[Blocco]] = None
    sezioni: List[SezioneLezione] = Field(default_factory=list)
    conclusione: Optional[List[Blocco]] = None
    risorse: List[Risorsa] = Field(default_factory=list)


# ============================================================================
# Compiler Output
# ============================================================================


class CompileResult(BaseModel):
    """Result of one ``compile`` call.

    ``lesson`` is None only when the frontmatter could not be parsed.
    """

    success: bool
    lesson: Optional[Lezione] = None
    errors: List[CompilerError] = Field(default_factory=list)
    warnings: List[CompilerWarning] = Field(default_factory=list)

    def lesson_dict(self) -> Optional[Dict[str, Any]]:
        if self.lesson is None:
            return None
        return self.lesson.model_dump(mode="json", by_alias=True, exclude_none=True)

    def to_json(self, indent: int = 2) -> str:
        data = self.model_dump(mode="json", by_alias=True, exclude_none=True)
        return json.dumps(data, ensure_ascii=False, indent=indent)


class ValidationReport(BaseModel):
    """Diagnostics-only view of a compilation."""

    valid: bool
    errors: List[CompilerError] = Field(default_factory=list)
    warnings: List[CompilerWarning] = Field(default_factory=list)
