"""
GDP Lab WebSocket service.

Run with:  uvicorn server:app --reload  (from the backend/ directory)

Each connection gets its own RoundSession; nothing is shared between
learners. Commands are JSON objects with a "command" field, see
handle_command() for the list.
"""

import json
import logging
import os
import sys
from typing import Any, Dict, List, Optional

# Add current directory to path so we can import backend modules
sys.path.append(os.path.dirname(os.path.abspath(__file__)))

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ValidationError

from models import Scenario
from reconcile import Report
from session import RoundSession

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="GDP Reconciliation Lab", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ---------- Payload Models ----------

class NewRoundCommand(BaseModel):
    seed: Optional[int] = None


class TabCommand(BaseModel):
    ledger: str


class PlaceCommand(BaseModel):
    card_id: str
    category_id: str


class UnplaceCommand(BaseModel):
    card_id: str


class CategoryView(BaseModel):
    id: str
    ledger: str
    label: str


class CardView(BaseModel):
    """What the learner sees: no correct category."""
    id: str
    ledger: str
    amount: int
    text: str


class TotalsView(BaseModel):
    gdp_production: int
    gdp_expenditure: int
    gdp_income: int
    gap: int
    placed_count: int
    status: str


class RoundView(BaseModel):
    type: str = "ROUND"
    round_id: str
    active_ledger: str
    categories: Dict[str, List[CategoryView]]
    cards: Dict[str, List[CardView]]
    totals: TotalsView


# ---------- Helpers ----------

def totals_view(report: Report) -> TotalsView:
    return TotalsView(
        gdp_production=report.gdp_production,
        gdp_expenditure=report.gdp_expenditure,
        gdp_income=report.gdp_income,
        gap=report.gap,
        placed_count=report.placed_count,
        status=report.status,
    )


def round_view(session: RoundSession, scenario: Scenario) -> RoundView:
    return RoundView(
        round_id=scenario.round_id,
        active_ledger=session.active_ledger,
        categories={
            ledger: [CategoryView(id=c.id, ledger=c.ledger, label=c.label) for c in bins]
            for ledger, bins in scenario.categories.items()
        },
        cards={
            ledger: [CardView(id=c.id, ledger=c.ledger, amount=c.amount, text=c.text) for c in cards.values()]
            for ledger, cards in scenario.cards.items()
        },
        totals=totals_view(session.check()),
    )


def handle_command(session: RoundSession, data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apply one client command to the session and build the reply.

    NEW_ROUND [seed] -> ROUND      RESET -> TOTALS       TAB ledger -> TAB
    PLACE card_id category_id -> TOTALS                  UNPLACE card_id -> TOTALS
    CHECK -> REPORT
    """
    command = data.get("command")

    if command == "NEW_ROUND":
        payload = NewRoundCommand(**{k: v for k, v in data.items() if k != "command"})
        scenario = session.new_round(seed=payload.seed)
        return round_view(session, scenario).model_dump()

    # Any other command needs a round to act on
    session.ensure_round()

    if command == "RESET":
        session.reset()
        return {"type": "TOTALS", "accepted": True, "totals": totals_view(session.check()).model_dump()}
    elif command == "TAB":
        payload = TabCommand(ledger=data.get("ledger"))
        accepted = session.set_active_ledger(payload.ledger)
        return {"type": "TAB", "accepted": accepted, "active_ledger": session.active_ledger}
    elif command == "PLACE":
        payload = PlaceCommand(card_id=data.get("card_id"), category_id=data.get("category_id"))
        accepted = session.place(payload.card_id, payload.category_id)
        return {"type": "TOTALS", "accepted": accepted, "totals": totals_view(session.check()).model_dump()}
    elif command == "UNPLACE":
        payload = UnplaceCommand(card_id=data.get("card_id"))
        accepted = session.unplace(payload.card_id)
        return {"type": "TOTALS", "accepted": accepted, "totals": totals_view(session.check()).model_dump()}
    elif command == "CHECK":
        report = session.check()
        return {"type": "REPORT", **report.to_dict()}

    return {"type": "ERROR", "error": f"Unknown command: {command}"}


@app.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    await websocket.accept()
    session = RoundSession()
    logger.info("WebSocket connected")

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data = json.loads(raw)
                if not isinstance(data, dict):
                    raise ValueError("command must be a JSON object")
                reply = handle_command(session, data)
            except ValidationError as e:
                reply = {"type": "ERROR", "error": f"Invalid payload: {e.errors()}"}
            except ValueError as e:
                reply = {"type": "ERROR", "error": str(e)}
            await websocket.send_json(reply)

    except WebSocketDisconnect:
        logger.info(f"Client disconnected after {session.rounds_played} round(s)")
