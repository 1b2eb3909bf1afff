"""
Cricket Scorer REST API

FastAPI server exposing the scoring session and the DLS calculator as HTTP
endpoints.
Run with: uvicorn scoring.api:app --host 0.0.0.0 --port 8000
"""

import logging
import math
from datetime import datetime
from pathlib import Path
from typing import Annotated, Literal, Optional, Union

from fastapi import Body, FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel, ConfigDict, Field, FiniteFloat, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel

from scoring import reducer
from scoring.ball_events import DismissalType, ball_label, counts_ball
from scoring.dls import (
    calculate_dls_mid_innings,
    calculate_dls_target,
    get_resources_remaining,
    minimum_overs,
)
from scoring.rates import format_overs, scoreboard
from scoring.session import MatchStore, ScoringSession
from storage import config
from storage.database import SqliteMatchStore, init_db, list_snapshots
from storage.validation import (
    SnapshotValidationError,
    decode_match_state,
    serialize_match_state,
)

logger = logging.getLogger(__name__)

MatchFormat = Literal['t20', 'odi', 'custom']


# =============================================================================
# Action Request Models
# =============================================================================

class ActionRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class AddRunRequest(ActionRequest):
    type: Literal['ADD_RUN']
    runs: int = Field(ge=0, le=6)

    def to_action(self):
        return reducer.AddRun(self.runs)


class AddWicketRequest(ActionRequest):
    type: Literal['ADD_WICKET']
    runs: int = Field(0, ge=0, le=6)
    dismissal: Optional[DismissalType] = None
    fielder_id: Optional[int] = None

    def to_action(self):
        return reducer.AddWicket(self.runs, self.dismissal, self.fielder_id)


class AddWideRequest(ActionRequest):
    type: Literal['ADD_WIDE']

    def to_action(self):
        return reducer.AddWide()


class AddWideWicketRequest(ActionRequest):
    type: Literal['ADD_WIDE_WICKET']
    dismissal: Optional[DismissalType] = None
    fielder_id: Optional[int] = None

    def to_action(self):
        return reducer.AddWideWicket(self.dismissal, self.fielder_id)


class AddNoBallRequest(ActionRequest):
    type: Literal['ADD_NOBALL']
    runs: int = Field(0, ge=0, le=6)
    is_run_out: bool = False

    def to_action(self):
        return reducer.AddNoBall(self.runs, self.is_run_out)


class AddByeRequest(ActionRequest):
    type: Literal['ADD_BYE']
    runs: int = Field(ge=0, le=6)

    def to_action(self):
        return reducer.AddBye(self.runs)


class AddLegByeRequest(ActionRequest):
    type: Literal['ADD_LEGBYE']
    runs: int = Field(ge=0, le=6)

    def to_action(self):
        return reducer.AddLegBye(self.runs)


class UndoRequest(ActionRequest):
    type: Literal['UNDO']

    def to_action(self):
        return reducer.Undo()


class EndInningsRequest(ActionRequest):
    type: Literal['END_INNINGS']

    def to_action(self):
        return reducer.EndInnings()


class NewMatchRequest(ActionRequest):
    type: Literal['NEW_MATCH'] = 'NEW_MATCH'
    total_overs: Optional[int] = Field(None, ge=1)

    def to_action(self):
        return reducer.NewMatch(self.total_overs)


class SetTotalOversRequest(ActionRequest):
    type: Literal['SET_TOTAL_OVERS']
    total_overs: int = Field(ge=1)

    def to_action(self):
        return reducer.SetTotalOvers(self.total_overs)


class LoadStateRequest(ActionRequest):
    type: Literal['LOAD_STATE']
    state: dict

    def to_action(self):
        # strict decode; SnapshotValidationError becomes a 422
        return reducer.LoadState(decode_match_state(self.state))


class SetOpeningBatsmenRequest(ActionRequest):
    type: Literal['SET_OPENING_BATSMEN']
    striker_id: int
    non_striker_id: int

    def to_action(self):
        return reducer.SetOpeningBatsmen(self.striker_id, self.non_striker_id)


class SetBowlerRequest(ActionRequest):
    type: Literal['SET_BOWLER']
    bowler_id: int

    def to_action(self):
        return reducer.SetBowler(self.bowler_id)


class NextBatsmanRequest(ActionRequest):
    type: Literal['NEXT_BATSMAN']
    batsman_id: int

    def to_action(self):
        return reducer.NextBatsman(self.batsman_id)


class RotateStrikeRequest(ActionRequest):
    type: Literal['ROTATE_STRIKE']

    def to_action(self):
        return reducer.RotateStrike()


class RainInterruptionRequest(ActionRequest):
    type: Literal['RAIN_INTERRUPTION']
    overs_lost: int = Field(ge=1)

    def to_action(self):
        return reducer.RainInterruption(self.overs_lost)


class ReviseTargetRequest(ActionRequest):
    type: Literal['REVISE_TARGET']
    target: int = Field(ge=1)
    total_overs: Optional[int] = Field(None, ge=1)

    def to_action(self):
        return reducer.ReviseTarget(self.target, self.total_overs)


AnyActionRequest = Annotated[
    Union[
        AddRunRequest, AddWicketRequest, AddWideRequest, AddWideWicketRequest,
        AddNoBallRequest, AddByeRequest, AddLegByeRequest, UndoRequest,
        EndInningsRequest, NewMatchRequest, SetTotalOversRequest, LoadStateRequest,
        SetOpeningBatsmenRequest, SetBowlerRequest, NextBatsmanRequest,
        RotateStrikeRequest, RainInterruptionRequest, ReviseTargetRequest,
    ],
    Field(discriminator='type'),
]

_action_adapter = TypeAdapter(AnyActionRequest)


# =============================================================================
# DLS Request Models
# =============================================================================

class DLSTargetRequest(BaseModel):
    team1_runs: int = Field(ge=0)
    team1_overs: FiniteFloat
    team1_all_out: bool = False
    team2_allocated_overs: FiniteFloat
    team2_overs_lost: FiniteFloat = Field(0, ge=0)
    match_format: MatchFormat = 'custom'


class DLSMidInningsRequest(BaseModel):
    team1_runs: int = Field(ge=0)
    team1_overs: FiniteFloat
    team2_current_score: int = Field(0, ge=0)
    team2_wickets: int = Field(0, ge=0, le=10)
    team2_balls_faced: int = Field(0, ge=0)
    team2_total_overs: FiniteFloat
    team2_reduced_overs: FiniteFloat
    match_format: MatchFormat = 'custom'


# =============================================================================
# Response Helpers
# =============================================================================

def _json_rate(rate: Optional[float]) -> Optional[float]:
    """JSON has no infinity; an unreachable rate is reported as null."""
    if rate is None or not math.isfinite(rate):
        return None
    return round(rate, 2)


def match_payload(session: ScoringSession) -> dict:
    """Snapshot plus scoreboard for one response."""
    board = dict(scoreboard(session.state))
    board['required_run_rate'] = _json_rate(board['required_run_rate'])
    return {
        "state": serialize_match_state(session.state),
        "scoreboard": board,
    }


def _validation_detail(e: ValidationError) -> list[dict]:
    # inputs are left out: a parsed 1e400 is inf, which JSON cannot carry
    return e.errors(include_url=False, include_context=False, include_input=False)


def _parse_body(model: type[BaseModel], payload: dict) -> BaseModel:
    try:
        return model.model_validate(payload)
    except ValidationError as e:
        raise HTTPException(status_code=422, detail=_validation_detail(e))


# =============================================================================
# App Factory
# =============================================================================

def create_app(store: Optional[MatchStore] = None, db_path: Optional[Path] = None) -> FastAPI:
    """
    Build the API around one scoring session.

    Args:
        store: MatchStore to persist through; defaults to the SQLite store
            named by the environment configuration
        db_path: Database listed by /api/matches; defaults to the configured one
    """
    app = FastAPI(
        title="Cricket Scorer API",
        description="Ball-by-ball scoring with undo and rain-affected target revision",
        version="1.0.0",
    )

    # Allow requests from the scoring frontend (phone/browser)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    snapshots_path = Path(db_path) if db_path is not None else config.DB_PATH

    @app.on_event("startup")
    def on_startup():
        config.validate_config()
        logging.basicConfig(
            level=config.LOG_LEVEL,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )
        match_store = store if store is not None else SqliteMatchStore(
            config.DB_PATH, config.MATCH_KEY, config.STORAGE_DISABLED,
        )
        init_db(snapshots_path)
        app.state.session = ScoringSession(match_store, config.DEFAULT_OVERS)
        logger.info("Scoring session ready")

    # -------------------------------------------------------------------------
    # Match Endpoints
    # -------------------------------------------------------------------------

    @app.get("/api/match")
    def api_get_match():
        """Get the current match snapshot and scoreboard."""
        return match_payload(app.state.session)

    @app.post("/api/match/actions")
    def api_dispatch_action(payload: dict = Body(...)):
        """Apply one scoring action. Ignored actions return the unchanged state."""
        try:
            request = _action_adapter.validate_python(payload)
            action = request.to_action()
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=_validation_detail(e))
        except SnapshotValidationError as e:
            raise HTTPException(status_code=422, detail=e.errors or str(e))

        app.state.session.dispatch(action)
        return match_payload(app.state.session)

    @app.post("/api/match/new")
    def api_new_match(request: Optional[NewMatchRequest] = None):
        """Start a new match, discarding the stored one."""
        request = request or NewMatchRequest()
        app.state.session.dispatch(request.to_action())
        return match_payload(app.state.session)

    @app.get("/api/match/history")
    def api_get_history():
        """Get the ball history with display labels, oldest first."""
        state = app.state.session.state
        entries = serialize_match_state(state)["ballHistory"]

        balls_so_far = {1: 0, 2: 0}
        history = []
        for event, entry in zip(state.ball_history, entries):
            balls_so_far[event.inning] += 1 if counts_ball(event) else 0
            history.append({**entry, "label": ball_label(event),
                            "overs": format_overs(balls_so_far[event.inning])})
        return history

    @app.get("/api/matches")
    def api_list_matches():
        """Get every stored match with a short summary."""
        return list_snapshots(snapshots_path)

    # -------------------------------------------------------------------------
    # DLS Endpoints
    # -------------------------------------------------------------------------

    @app.get("/api/dls/resources")
    def api_get_resources(
        overs_remaining: FiniteFloat = Query(...),
        wickets_lost: int = Query(0),
    ):
        """Get the resource percentage for overs remaining and wickets lost."""
        return {
            "overs_remaining": overs_remaining,
            "wickets_lost": wickets_lost,
            "resources": round(get_resources_remaining(overs_remaining, wickets_lost), 2),
        }

    @app.post("/api/dls/target")
    def api_dls_target(payload: dict = Body(...)):
        """Revised target when overs are lost before the chase."""
        request = _parse_body(DLSTargetRequest, payload)
        result = calculate_dls_target(
            request.team1_runs,
            request.team1_overs,
            request.team1_all_out,
            request.team2_allocated_overs,
            request.team2_overs_lost,
        )
        revised_overs = max(0, request.team2_allocated_overs - request.team2_overs_lost)
        minimum = minimum_overs(request.match_format)
        return {
            **result._asdict(),
            "revised_overs": revised_overs,
            "minimum_overs": minimum,
            "is_valid_result": revised_overs >= minimum,
        }

    @app.post("/api/dls/mid-innings")
    def api_dls_mid_innings(payload: dict = Body(...)):
        """Revised target when the chase is interrupted and shortened."""
        request = _parse_body(DLSMidInningsRequest, payload)
        result = calculate_dls_mid_innings(
            request.team1_runs,
            request.team1_overs,
            request.team2_current_score,
            request.team2_wickets,
            request.team2_balls_faced,
            request.team2_total_overs,
            request.team2_reduced_overs,
        )
        minimum = minimum_overs(request.match_format)
        return {
            **result._asdict(),
            "minimum_overs": minimum,
            "is_valid_result": request.team2_reduced_overs >= minimum,
        }

    # -------------------------------------------------------------------------
    # Health Check
    # -------------------------------------------------------------------------

    @app.get("/api/health")
    def health_check():
        """Health check endpoint."""
        return {"status": "ok", "timestamp": datetime.now().isoformat()}

    return app


app = create_app()
