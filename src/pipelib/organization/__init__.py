"""Relocation and removal of pipefiles."""

from .models import RemovalOutcome, TransferOutcome
from .relocator import Relocator
from .remover import Remover

__all__ = ["Relocator", "Remover", "TransferOutcome", "RemovalOutcome"]
