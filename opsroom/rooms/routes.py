from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from opsroom.errors import OpsRoomError, to_http
from opsroom.meetings.controller import MeetingController, get_meeting_controller
from opsroom.models.api_model import ActionItemStatusRequest, RoomCreateRequest, RoomUpdateRequest
from opsroom.utils.auth import current_user

from .controller import RoomController, get_room_controller

router = APIRouter()
action_items_router = APIRouter()


@router.get("")
def list_rooms(user: str | None = Depends(current_user), controller: RoomController = Depends(get_room_controller)):
    try:
        return controller.list_rooms(user)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.post("", status_code=201)
def create_room(
    payload: RoomCreateRequest,
    user: str | None = Depends(current_user),
    controller: RoomController = Depends(get_room_controller),
):
    try:
        return controller.create_room(user, payload.name, payload.goal)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.get("/{room_id}")
def get_room(
    room_id: str,
    user: str | None = Depends(current_user),
    controller: RoomController = Depends(get_room_controller),
):
    try:
        return controller.get_room(user, room_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.patch("/{room_id}")
def update_room(
    room_id: str,
    payload: RoomUpdateRequest,
    user: str | None = Depends(current_user),
    controller: RoomController = Depends(get_room_controller),
):
    try:
        return controller.update_room(user, room_id, **payload.model_dump(exclude_unset=True))
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.delete("/{room_id}", status_code=204)
def delete_room(
    room_id: str,
    user: str | None = Depends(current_user),
    controller: RoomController = Depends(get_room_controller),
):
    try:
        controller.delete_room(user, room_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc
    return Response(status_code=204)


@router.get("/{room_id}/meetings")
def list_meetings(
    room_id: str,
    user: str | None = Depends(current_user),
    meetings: MeetingController = Depends(get_meeting_controller),
):
    try:
        return meetings.list_meetings(user, room_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.post("/{room_id}/meetings", status_code=201)
def create_meeting(
    room_id: str,
    user: str | None = Depends(current_user),
    meetings: MeetingController = Depends(get_meeting_controller),
):
    try:
        return meetings.create_meeting(user, room_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.get("/{room_id}/meetings/active")
def active_meeting(
    room_id: str,
    user: str | None = Depends(current_user),
    meetings: MeetingController = Depends(get_meeting_controller),
):
    try:
        return meetings.active_meeting(user, room_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.post("/{room_id}/connect")
def connect(
    room_id: str,
    user: str | None = Depends(current_user),
    meetings: MeetingController = Depends(get_meeting_controller),
):
    try:
        return meetings.connect(user, room_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.get("/{room_id}/action-items")
def list_room_action_items(
    room_id: str,
    user: str | None = Depends(current_user),
    controller: RoomController = Depends(get_room_controller),
):
    try:
        return controller.list_action_items_for_room(user, room_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.get("/{room_id}/summaries")
def list_summaries(
    room_id: str,
    user: str | None = Depends(current_user),
    meetings: MeetingController = Depends(get_meeting_controller),
):
    try:
        return meetings.list_summaries(user, room_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.get("/{room_id}/summaries/latest")
def latest_summary(
    room_id: str,
    user: str | None = Depends(current_user),
    meetings: MeetingController = Depends(get_meeting_controller),
):
    try:
        return meetings.latest_summary(user, room_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@action_items_router.patch("/{item_id}")
def set_action_item_status(
    item_id: str,
    payload: ActionItemStatusRequest,
    user: str | None = Depends(current_user),
    controller: RoomController = Depends(get_room_controller),
):
    try:
        return controller.set_action_item_status(user, item_id, payload.status)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@action_items_router.delete("/{item_id}", status_code=204)
def delete_action_item(
    item_id: str,
    user: str | None = Depends(current_user),
    controller: RoomController = Depends(get_room_controller),
):
    try:
        controller.delete_action_item(user, item_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc
    return Response(status_code=204)
