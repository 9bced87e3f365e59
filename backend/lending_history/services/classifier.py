"""Lending program instruction classification."""
from typing import Any, Dict, Iterable, Optional
import logging

import base58

from lending_history.models.transaction import OperationType

logger = logging.getLogger(__name__)

DISCRIMINATOR_LENGTH = 8

# Anchor instruction discriminators of the lending program, keyed by hex
DISCRIMINATORS: Dict[str, OperationType] = {
    bytes([242, 35, 198, 137, 82, 225, 242, 182]).hex(): OperationType.DEPOSIT,
    bytes([183, 18, 70, 156, 148, 109, 161, 34]).hex(): OperationType.WITHDRAW,
    bytes([228, 253, 131, 202, 207, 116, 89, 18]).hex(): OperationType.BORROW,
    bytes([234, 103, 67, 82, 208, 234, 219, 166]).hex(): OperationType.REPAY,
    bytes([14, 51, 68, 159, 237, 78, 158, 102]).hex(): OperationType.INIT_ACCOUNT,
    bytes([93, 39, 255, 186, 239, 199, 197, 123]).hex(): OperationType.INIT_ACCOUNT_STATE,
}


def classify_discriminator(data: bytes) -> OperationType:
    """Map instruction bytes to an operation using their leading 8 bytes."""
    if len(data) < DISCRIMINATOR_LENGTH:
        return OperationType.UNKNOWN
    return DISCRIMINATORS.get(data[:DISCRIMINATOR_LENGTH].hex(), OperationType.UNKNOWN)


def decode_instruction_data(data: Any) -> Optional[bytes]:
    """Decode the base58 ``data`` field of a partially decoded instruction."""
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    if not isinstance(data, str) or not data:
        return None
    try:
        return base58.b58decode(data)
    except ValueError:
        logger.debug("[CLASSIFY] Instruction data is not base58: %r", data[:16])
        return None


def find_program_instruction(
    instructions: Iterable[Dict[str, Any]],
    program_id: str,
) -> Optional[Dict[str, Any]]:
    """Return the first instruction addressed to ``program_id``."""
    for instruction in instructions:
        if str(instruction.get("programId", "")) == program_id:
            return instruction
    return None


def classify_instruction(instruction: Optional[Dict[str, Any]]) -> OperationType:
    """Classify a lending program instruction; undecodable data is Unknown."""
    if not instruction:
        return OperationType.UNKNOWN
    data = decode_instruction_data(instruction.get("data"))
    if data is None:
        return OperationType.UNKNOWN
    return classify_discriminator(data)
