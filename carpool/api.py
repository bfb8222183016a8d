"""FastAPI application exposing the carpool REST endpoints."""
from __future__ import annotations

import logging
import os
from typing import Annotated, Dict, List

from fastapi import Depends, FastAPI, Path, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field, StrictStr

from .config import resolve_database_path, default_fare_defaults
from .database import Database
from .errors import CarpoolError
from .models import CarState, FareConfig, FullState, Occupant, User
from .service import CarpoolService

logger = logging.getLogger("carpool.api")

# SQLite stores signed 64-bit integers; larger values never reach the store.
SQLITE_INT_MIN = -(2**63)
SQLITE_INT_MAX = 2**63 - 1

SQLiteInt = Annotated[int, Field(strict=True, ge=SQLITE_INT_MIN, le=SQLITE_INT_MAX)]
RowId = Annotated[int, Path(ge=SQLITE_INT_MIN, le=SQLITE_INT_MAX)]


class ConfigUpdateRequest(BaseModel):
    price_with_pass_cents: SQLiteInt
    price_without_pass_cents: SQLiteInt
    max_car_capacity: SQLiteInt


class ConfigResponse(BaseModel):
    id: int
    price_with_pass_cents: int
    price_without_pass_cents: int
    max_car_capacity: int


class CreateUserRequest(BaseModel):
    name: StrictStr
    has_pass: bool = False
    is_driver: bool = False


class UserResponse(BaseModel):
    id: int
    name: str
    has_pass: bool
    is_driver: bool
    created_at: str


class CreateCarRequest(BaseModel):
    driver_id: SQLiteInt
    capacity: SQLiteInt


class SeatRequest(BaseModel):
    user_id: SQLiteInt


class DriverResponse(BaseModel):
    id: int
    name: str
    has_pass: bool


class OccupantResponse(DriverResponse):
    is_driver: bool


class CarStateResponse(BaseModel):
    car_id: int
    capacity: int
    driver: DriverResponse
    passengers: List[OccupantResponse]
    seats_left: int
    any_pass_in_car: bool
    passenger_price_cents: int
    passenger_price: str


class TotalsResponse(BaseModel):
    passenger_count: int
    total_fees_cents: int
    total_fees: str


class FullStateResponse(BaseModel):
    config: ConfigResponse
    cars: List[CarStateResponse]
    users_unassigned: List[OccupantResponse]
    totals: TotalsResponse


def config_to_response(config: FareConfig) -> ConfigResponse:
    return ConfigResponse(
        id=config.id,
        price_with_pass_cents=config.price_with_pass_cents,
        price_without_pass_cents=config.price_without_pass_cents,
        max_car_capacity=config.max_car_capacity,
    )


def user_to_response(user: User) -> UserResponse:
    return UserResponse(
        id=user.id,
        name=user.name,
        has_pass=user.has_pass,
        is_driver=user.is_driver,
        created_at=user.created_at.isoformat(),
    )


def occupant_to_response(occupant: Occupant) -> OccupantResponse:
    return OccupantResponse(
        id=occupant.id,
        name=occupant.name,
        has_pass=occupant.has_pass,
        is_driver=occupant.is_driver,
    )


def car_state_to_response(car: CarState) -> CarStateResponse:
    return CarStateResponse(
        car_id=car.car_id,
        capacity=car.capacity,
        driver=DriverResponse(id=car.driver.id, name=car.driver.name, has_pass=car.driver.has_pass),
        passengers=[occupant_to_response(passenger) for passenger in car.passengers],
        seats_left=car.seats_left,
        any_pass_in_car=car.any_pass_in_car,
        passenger_price_cents=car.passenger_price_cents,
        passenger_price=car.passenger_price,
    )


def full_state_to_response(state: FullState) -> FullStateResponse:
    return FullStateResponse(
        config=config_to_response(state.config),
        cars=[car_state_to_response(car) for car in state.cars],
        users_unassigned=[occupant_to_response(user) for user in state.users_unassigned],
        totals=TotalsResponse(
            passenger_count=state.totals.passenger_count,
            total_fees_cents=state.totals.total_fees_cents,
            total_fees=state.totals.total_fees,
        ),
    )


def describe_validation_error(exc: RequestValidationError) -> str:
    """Turn the first pydantic error into a short ``field: message`` string."""

    errors = exc.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    location = [str(part) for part in first.get("loc", ()) if part not in ("body", "path", "query")]
    message = str(first.get("msg", "invalid value"))
    if location:
        return f"{'.'.join(location)}: {message}"
    return message


def create_app(
    *,
    database: Database | None = None,
    service: CarpoolService | None = None,
) -> FastAPI:
    if service is not None:
        database = service.database
    if database is None:
        db_path = resolve_database_path(os.getenv("CARPOOL_DB_PATH"))
        database = Database(db_path)
        database.initialize(default_fare_defaults())

    if service is None:
        service = CarpoolService(database)

    app = FastAPI(
        title="Carpool Coordinator",
        description="Riders, drivers, cars, seat assignments and passenger fares",
        version="1.0.0",
    )
    app.state.database = database
    app.state.service = service

    def get_service() -> CarpoolService:
        return service

    @app.exception_handler(CarpoolError)
    async def handle_carpool_error(_: Request, exc: CarpoolError):
        return JSONResponse(status_code=exc.status_code, content={"error": exc.message})

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation_error(request: Request, exc: RequestValidationError):
        message = describe_validation_error(exc)
        logger.info("Rejected %s %s: %s", request.method, request.url.path, message)
        return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"error": message})

    @app.exception_handler(Exception)
    async def handle_unexpected_error(request: Request, exc: Exception):
        logger.exception("Unhandled error on %s %s", request.method, request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"error": "internal error"},
        )

    @app.get("/health")
    async def healthcheck() -> Dict[str, bool]:
        return {"ok": True}

    @app.get("/config", response_model=ConfigResponse)
    async def read_config(svc: CarpoolService = Depends(get_service)) -> ConfigResponse:
        return config_to_response(svc.get_config())

    @app.post("/config", response_model=ConfigResponse)
    async def update_config(
        payload: ConfigUpdateRequest,
        svc: CarpoolService = Depends(get_service),
    ) -> ConfigResponse:
        config = svc.update_config(
            price_with_pass_cents=payload.price_with_pass_cents,
            price_without_pass_cents=payload.price_without_pass_cents,
            max_car_capacity=payload.max_car_capacity,
        )
        return config_to_response(config)

    @app.post("/users", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
    async def create_user(
        payload: CreateUserRequest,
        svc: CarpoolService = Depends(get_service),
    ) -> UserResponse:
        user = svc.create_user(payload.name, has_pass=payload.has_pass, is_driver=payload.is_driver)
        return user_to_response(user)

    @app.get("/users", response_model=List[UserResponse])
    async def list_users(svc: CarpoolService = Depends(get_service)) -> List[UserResponse]:
        return [user_to_response(user) for user in svc.list_users()]

    @app.delete("/users/{user_id}")
    async def delete_user(user_id: RowId, svc: CarpoolService = Depends(get_service)) -> Dict[str, bool]:
        svc.delete_user(user_id)
        return {"ok": True}

    @app.post("/cars", response_model=CarStateResponse, status_code=status.HTTP_201_CREATED)
    async def create_car(
        payload: CreateCarRequest,
        svc: CarpoolService = Depends(get_service),
    ) -> CarStateResponse:
        return car_state_to_response(svc.create_car(payload.driver_id, payload.capacity))

    @app.get("/cars", response_model=List[CarStateResponse])
    async def list_cars(svc: CarpoolService = Depends(get_service)) -> List[CarStateResponse]:
        return [car_state_to_response(car) for car in svc.list_cars()]

    @app.delete("/cars/{car_id}")
    async def delete_car(car_id: RowId, svc: CarpoolService = Depends(get_service)) -> Dict[str, bool]:
        svc.delete_car(car_id)
        return {"ok": True}

    @app.post("/cars/{car_id}/join", response_model=CarStateResponse)
    async def join_car(
        car_id: RowId,
        payload: SeatRequest,
        svc: CarpoolService = Depends(get_service),
    ) -> CarStateResponse:
        return car_state_to_response(svc.join_car(car_id, payload.user_id))

    @app.post("/cars/{car_id}/leave", response_model=CarStateResponse)
    async def leave_car(
        car_id: RowId,
        payload: SeatRequest,
        svc: CarpoolService = Depends(get_service),
    ) -> CarStateResponse:
        return car_state_to_response(svc.leave_car(car_id, payload.user_id))

    @app.post("/auto-assign", response_model=FullStateResponse)
    async def auto_assign(svc: CarpoolService = Depends(get_service)) -> FullStateResponse:
        return full_state_to_response(svc.auto_assign())

    @app.get("/state", response_model=FullStateResponse)
    async def read_state(svc: CarpoolService = Depends(get_service)) -> FullStateResponse:
        return full_state_to_response(svc.state())

    @app.post("/purge")
    async def purge(svc: CarpoolService = Depends(get_service)) -> Dict[str, bool]:
        svc.purge()
        return {"ok": True}

    return app


__all__ = ["create_app", "describe_validation_error"]
