"""
Copyright 2024 Job Application Helper Contributors

Licensed under the Apache License, Version 2.0 (the "License");
you may not use this file except in compliance with the License.
You may obtain a copy of the License at

    http://www.apache.org/licenses/LICENSE-2.0

Unless required by applicable law or agreed to in writing, software
distributed under the License is distributed on an "AS IS" BASIS,
WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
See the License for the specific language governing permissions and
limitations under the License.
"""

"""
User preference endpoints: table columns and notification settings.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends

from hiring_console.api.dependencies import get_preferences, get_user_id, get_workspace
from hiring_console.api.models import (
    ColumnEditorResponse,
    ColumnsResponse,
    ColumnsUpdateRequest,
    NotificationPreferencesModel,
)
from hiring_console.core.errors import ValidationError
from hiring_console.core.preferences import (
    ColumnEditor,
    NotificationPreferences,
    PreferencesManager,
    TableColumn,
)
from hiring_console.core.workspace import Workspace
from hiring_console.utils.logging import get_logger

logger = get_logger(__name__)

router = APIRouter(prefix="/preferences", tags=["preferences"])
settings_router = APIRouter(prefix="/settings", tags=["settings"])


def _columns_response(table: str, columns) -> ColumnsResponse:
    return ColumnsResponse(success=True, table=table, columns=[asdict(c) for c in columns])


@router.get("/columns/{table}", response_model=ColumnsResponse)
def get_columns(
    table: str,
    user_id: str = Depends(get_user_id),
    preferences: PreferencesManager = Depends(get_preferences),
):
    return _columns_response(table, preferences.get_columns(user_id, table))


@router.put("/columns/{table}", response_model=ColumnsResponse)
def update_columns(
    table: str,
    request: ColumnsUpdateRequest,
    user_id: str = Depends(get_user_id),
    preferences: PreferencesManager = Depends(get_preferences),
):
    """Save the customization panel's column list in one go."""
    columns = [TableColumn(c.key, c.label or "", c.visible) for c in request.columns]
    return _columns_response(table, preferences.update_columns(user_id, table, columns))


@router.post("/columns/{table}/{column_key}/toggle", response_model=ColumnsResponse)
def toggle_column(
    table: str,
    column_key: str,
    user_id: str = Depends(get_user_id),
    preferences: PreferencesManager = Depends(get_preferences),
):
    return _columns_response(table, preferences.toggle_column(user_id, table, column_key))


@router.delete("/columns/{table}", response_model=ColumnsResponse)
def reset_columns(
    table: str,
    user_id: str = Depends(get_user_id),
    preferences: PreferencesManager = Depends(get_preferences),
):
    return _columns_response(table, preferences.reset_columns(user_id, table))


def _editor_response(table: str, editor: ColumnEditor) -> ColumnEditorResponse:
    return ColumnEditorResponse(
        success=True,
        table=table,
        columns=[asdict(c) for c in editor.temp],
        options=[asdict(c) for c in editor.visible_options()],
        search_term=editor.search_term,
        changed=editor.changed_keys(),
    )


def _open_editor(workspace: Workspace, table: str) -> ColumnEditor:
    editor = workspace.column_editors.get(table)
    if editor is None:
        raise ValidationError(f"Column editor for {table} is not open")
    return editor


@router.post("/columns/{table}/editor", response_model=ColumnEditorResponse)
def open_column_editor(
    table: str,
    user_id: str = Depends(get_user_id),
    preferences: PreferencesManager = Depends(get_preferences),
    workspace: Workspace = Depends(get_workspace),
):
    """Open the customization panel on a temp copy of the saved columns."""
    editor = ColumnEditor(preferences.get_columns(user_id, table))
    workspace.column_editors[table] = editor
    return _editor_response(table, editor)


@router.get("/columns/{table}/editor", response_model=ColumnEditorResponse)
def search_column_editor(
    table: str,
    search: str = "",
    workspace: Workspace = Depends(get_workspace),
):
    editor = _open_editor(workspace, table)
    editor.search(search)
    return _editor_response(table, editor)


@router.post("/columns/{table}/editor/{column_key}/toggle", response_model=ColumnEditorResponse)
def toggle_editor_column(
    table: str,
    column_key: str,
    workspace: Workspace = Depends(get_workspace),
):
    editor = _open_editor(workspace, table)
    editor.toggle(column_key)
    return _editor_response(table, editor)


@router.post("/columns/{table}/editor/apply", response_model=ColumnsResponse)
def apply_column_editor(
    table: str,
    user_id: str = Depends(get_user_id),
    preferences: PreferencesManager = Depends(get_preferences),
    workspace: Workspace = Depends(get_workspace),
):
    """Save the panel's columns and close it."""
    editor = _open_editor(workspace, table)
    saved = preferences.update_columns(user_id, table, editor.apply())
    workspace.column_editors.pop(table, None)
    return _columns_response(table, saved)


@router.delete("/columns/{table}/editor", response_model=ColumnsResponse)
def cancel_column_editor(table: str, workspace: Workspace = Depends(get_workspace)):
    editor = workspace.column_editors.pop(table, None)
    if editor is None:
        raise ValidationError(f"Column editor for {table} is not open")
    return _columns_response(table, editor.cancel())


@settings_router.get("/notifications", response_model=NotificationPreferencesModel)
def get_notifications(
    user_id: str = Depends(get_user_id),
    preferences: PreferencesManager = Depends(get_preferences),
):
    return asdict(preferences.get_notifications(user_id))


@settings_router.put("/notifications", response_model=NotificationPreferencesModel)
def save_notifications(
    request: NotificationPreferencesModel,
    user_id: str = Depends(get_user_id),
    preferences: PreferencesManager = Depends(get_preferences),
):
    saved = preferences.save_notifications(
        user_id, NotificationPreferences.from_dict(request.model_dump())
    )
    return asdict(saved)
