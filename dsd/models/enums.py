"""
Categorical vocabulary shared by the DSD pipeline.

Values are the Portuguese clinical terms the inference service is asked to
produce, so they double as the wire values of the assessment JSON.
"""

from enum import Enum


class SmileLine(str, Enum):
    """Gingival display when smiling, ordered baixa < média < alta."""

    BAIXA = "baixa"
    MEDIA = "média"
    ALTA = "alta"


class Confidence(str, Enum):
    """Self-reported confidence of an inference result."""

    BAIXA = "baixa"
    MEDIA = "média"
    ALTA = "alta"


SMILE_LINE_ORDINAL: dict[str, int] = {
    SmileLine.BAIXA.value: 0,
    SmileLine.MEDIA.value: 1,
    SmileLine.ALTA.value: 2,
}


class FacialMidline(str, Enum):
    CENTRADA = "centrada"
    DESVIADA_ESQUERDA = "desviada_esquerda"
    DESVIADA_DIREITA = "desviada_direita"


class DentalMidline(str, Enum):
    ALINHADA = "alinhada"
    DESVIADA_ESQUERDA = "desviada_esquerda"
    DESVIADA_DIREITA = "desviada_direita"


class BuccalCorridor(str, Enum):
    ADEQUADO = "adequado"
    EXCESSIVO = "excessivo"
    AUSENTE = "ausente"


class OcclusalPlane(str, Enum):
    NIVELADO = "nivelado"
    INCLINADO_ESQUERDA = "inclinado_esquerda"
    INCLINADO_DIREITA = "inclinado_direita"


class OverbiteSuspicion(str, Enum):
    SIM = "sim"
    NAO = "não"
    INDETERMINADO = "indeterminado"


class LipThickness(str, Enum):
    FINO = "fino"
    MEDIO = "médio"
    VOLUMOSO = "volumoso"


class SmileArc(str, Enum):
    CONSONANTE = "consonante"
    PLANO = "plano"
    REVERSO = "reverso"


class FaceShape(str, Enum):
    OVAL = "oval"
    QUADRADO = "quadrado"
    TRIANGULAR = "triangular"
    RETANGULAR = "retangular"
    REDONDO = "redondo"


class Temperament(str, Enum):
    COLERICO = "colérico"
    SANGUINEO = "sanguíneo"
    MELANCOLICO = "melancólico"
    FLEUMATICO = "fleumático"
    MISTO = "misto"


class ToothShape(str, Enum):
    """Tooth shape, used both as user preference and visagism recommendation."""

    QUADRADO = "quadrado"
    OVAL = "oval"
    TRIANGULAR = "triangular"
    RETANGULAR = "retangular"
    NATURAL = "natural"


class TreatmentIndication(str, Enum):
    """Treatment families a tooth finding can point to."""

    RESINA = "resina"
    PORCELANA = "porcelana"
    COROA = "coroa"
    IMPLANTE = "implante"
    ENDODONTIA = "endodontia"
    ENCAMINHAMENTO = "encaminhamento"
    GENGIVOPLASTIA = "gengivoplastia"
    RECOBRIMENTO_RADICULAR = "recobrimento_radicular"


class WhiteningLevel(str, Enum):
    NATURAL = "natural"
    WHITE = "white"
    HOLLYWOOD = "hollywood"


class SimulationMode(str, Enum):
    """Prompt variant chosen for the image simulation."""

    STANDARD = "standard"
    INTRAORAL = "intraoral"
    RECONSTRUCTION = "reconstruction"


class ExtractionFailureReason(str, Enum):
    """Why a structured extraction could not produce an assessment."""

    RATE_LIMITED = "rate_limited"
    PAYMENT_REQUIRED = "payment_required"
    MALFORMED_RESPONSE = "malformed_response"
    UPSTREAM_UNAVAILABLE = "upstream_unavailable"
