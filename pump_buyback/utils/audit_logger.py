# pump_buyback/utils/audit_logger.py

import json
from datetime import datetime, timezone
from typing import Optional

from pump_buyback.trading.base import CycleResult, TradeResult, lamports_to_sol
from .logger import get_logger

audit_log = get_logger("AuditLogger")


class AuditLogger:
    """
    One JSON line per buyback event, to the console and optionally a file.
    """

    def __init__(self, log_to_file: bool = False, filepath: str = "buyback_audit.log"):
        self.log_to_file = log_to_file
        self.filepath = filepath
        audit_log.debug("AuditLogger initialized.")

    def _emit(self, log_entry: dict) -> str:
        log_message = json.dumps(log_entry)
        audit_log.info(log_message)

        if self.log_to_file:
            try:
                with open(self.filepath, "a") as f:
                    f.write(log_message + "\n")
            except OSError as e:
                audit_log.error(f"Failed to write audit log to file {self.filepath}: {e}")
        return log_message

    def log_cycle_event(
            self,
            event_type: str,  # e.g. "CYCLE_COMPLETE", "CYCLE_SKIPPED", "CYCLE_ERROR"
            token_mint: str,
            result: CycleResult,
            extra_data: Optional[dict] = None,
    ) -> str:
        """Logs the outcome of one claim-and-buy cycle."""
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type.upper(),
            "token_mint": token_mint,
            "claimed_sol": round(result.claimed_sol, 9),
            "claim_signature": result.claim_tx,
            "buyback_signature": result.buyback_tx,
            "graduated": result.graduated,
            "skipped": result.skipped,
            "error": result.error,
        }
        if extra_data:
            log_entry.update(extra_data)
        return self._emit(log_entry)

    def log_trade_event(
            self,
            event_type: str,  # e.g. "MANUAL_BUY_SUCCESS", "MANUAL_BUY_FAIL"
            token_mint: str,
            trade_result: TradeResult,
            extra_data: Optional[dict] = None,
    ) -> str:
        log_entry = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "event_type": event_type.upper(),
            "token_mint": token_mint,
            "status": trade_result.status.value,
            "signature": trade_result.signature,
            "error": trade_result.error,
            "buy_sol_spent": lamports_to_sol(trade_result.sol_in_lamports),
        }
        if trade_result.quote is not None:
            log_entry["buy_tokens_expected"] = trade_result.quote.tokens_out
            log_entry["buy_min_tokens_out"] = trade_result.quote.min_tokens_out
        if extra_data:
            log_entry.update(extra_data)
        return self._emit(log_entry)
