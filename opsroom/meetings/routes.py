from __future__ import annotations

from fastapi import APIRouter, Depends

from opsroom.errors import OpsRoomError, to_http
from opsroom.models.api_model import SubStateRequest, TurnRequest
from opsroom.rooms.controller import RoomController, get_room_controller
from opsroom.utils.auth import current_user

from .controller import MeetingController, get_meeting_controller

router = APIRouter()


@router.get("/{meeting_id}")
def get_meeting(
    meeting_id: str,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return controller.get_meeting(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.get("/{meeting_id}/state")
def get_meeting_state(
    meeting_id: str,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return controller.get_state(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.post("/{meeting_id}/start")
def start_meeting(
    meeting_id: str,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return controller.start(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.post("/{meeting_id}/pause")
def pause_meeting(
    meeting_id: str,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return controller.pause(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.post("/{meeting_id}/end")
def end_meeting(
    meeting_id: str,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return controller.end(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.post("/{meeting_id}/finish")
async def finish_meeting(
    meeting_id: str,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return await controller.finish(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.put("/{meeting_id}/sub-state")
def set_sub_state(
    meeting_id: str,
    payload: SubStateRequest,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return controller.set_sub_state(user, meeting_id, payload.sub_state)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.post("/{meeting_id}/turns")
async def process_turn(
    meeting_id: str,
    payload: TurnRequest,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return await controller.process_turn(
            user,
            meeting_id,
            speaker_id=payload.speaker_id,
            speaker_name=payload.speaker_name,
            text=payload.text,
            room_context=payload.room_context,
            room_goal=payload.room_goal,
            start_time=payload.start_time,
            end_time=payload.end_time,
        )
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.get("/{meeting_id}/turns")
def list_turns(
    meeting_id: str,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return controller.list_turns(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.get("/{meeting_id}/speaker-updates")
def list_speaker_updates(
    meeting_id: str,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return controller.list_speaker_updates(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.get("/{meeting_id}/action-items")
def list_action_items(
    meeting_id: str,
    user: str | None = Depends(current_user),
    rooms: RoomController = Depends(get_room_controller),
):
    try:
        return rooms.list_action_items_for_meeting(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.get("/{meeting_id}/summary")
def get_summary(
    meeting_id: str,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return controller.get_summary(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc


@router.post("/{meeting_id}/summary")
async def generate_summary(
    meeting_id: str,
    user: str | None = Depends(current_user),
    controller: MeetingController = Depends(get_meeting_controller),
):
    try:
        return await controller.generate_summary(user, meeting_id)
    except OpsRoomError as exc:
        raise to_http(exc) from exc
