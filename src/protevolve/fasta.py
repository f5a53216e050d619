from __future__ import annotations

import io
import re

from Bio import SeqIO
from Bio.Seq import Seq
from Bio.SeqRecord import SeqRecord

from .schemas import DesignResult

_NON_RESIDUE = re.compile(r"[^A-Za-z*]")


def clean_sequence(sequence: str) -> str:
    """Drop whitespace, digits and punctuation the model sometimes leaves in."""
    return _NON_RESIDUE.sub("", sequence).upper()


def design_to_record(result: DesignResult, *, record_id: str = "design") -> SeqRecord:
    description = f"template={result.pdb_id.upper()} confidence={result.confidence}"
    if result.binding_affinity is not None:
        description += f" binding_affinity={result.binding_affinity:g}kcal/mol"
    if result.predicted_stability is not None:
        description += f" stability={result.predicted_stability:g}"
    return SeqRecord(Seq(clean_sequence(result.sequence)), id=record_id, description=description)


def design_to_fasta(result: DesignResult, *, record_id: str = "design") -> str:
    buf = io.StringIO()
    SeqIO.write([design_to_record(result, record_id=record_id)], buf, "fasta")
    return buf.getvalue()
