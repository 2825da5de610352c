# Copyright 2024 Michael Maillet, Damien Davison, Sacha Davison
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Event envelopes exchanged with hook and stage containers over stdin/stdout.

Envelopes use the CloudEvents 1.0 JSON attribute names.
"""
import uuid
from datetime import datetime, timezone
from enum import Enum
from typing import IO, Any, List, Optional
import yaml
from pydantic import BaseModel, Field


class ModuleEventType(str, Enum):
    LIST_HOOK_RESPONSE = "com.ibm.techzone.cli.hook.list.response"
    VALIDATE_HOOK_RESPONSE = "com.ibm.techzone.cli.hook.validate.response"
    VALIDATE_HOOK_REQUEST = "com.ibm.techzone.cli.hook.validate.request"
    GET_STATE_HOOK_RESPONSE = "com.ibm.techzone.cli.hook.get_state.response"
    GET_STATE_HOOK_REQUEST = "com.ibm.techzone.cli.hook.get_state.request"
    PRE_DEPLOY_LIFECYCLE_REQUEST = "com.ibm.techzone.cli.lifecycle.pre_deploy.request"
    DEPLOY_LIFECYCLE_REQUEST = "com.ibm.techzone.cli.lifecycle.deploy.request"
    POST_DEPLOY_LIFECYCLE_REQUEST = "com.ibm.techzone.cli.lifecycle.post_deploy.request"


class EventDataVarInfo(BaseModel):
    """
    A module parameter as reported by the list hook or sent to validate.
    """
    name: str
    value: Optional[str] = None
    default: Optional[str] = None
    description: Optional[str] = None


class EventData(BaseModel):
    variables: List[EventDataVarInfo] = []


class ModuleEvent(BaseModel):
    """
    A structured event envelope. ``data`` is left opaque.
    """
    specversion: str = "1.0"
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    source: str
    type: str
    subject: Optional[str] = None
    time: Optional[datetime] = None
    datacontenttype: Optional[str] = "application/json"
    data: Any = None


def new_event(event_type: ModuleEventType, source: str, data: Any = None,
              subject: Optional[str] = None) -> ModuleEvent:
    """
    Creates an event stamped with a fresh id and the current UTC time.
    """
    if isinstance(data, BaseModel):
        data = data.model_dump(exclude_none=True)
    return ModuleEvent(
        type=ModuleEventType(event_type).value,
        source=source,
        subject=subject,
        time=datetime.now(timezone.utc),
        data=data,
    )


def load_event(event_s: str) -> ModuleEvent:
    """
    Parses a JSON event envelope.

    :raises pydantic.ValidationError: If the envelope is malformed.
    """
    return ModuleEvent.model_validate_json(event_s)


def load_event_data(event: ModuleEvent) -> EventData:
    """
    Reads the variables carried in an event's data.

    Data may already be decoded, or still be a JSON/YAML document.
    """
    data = event.data
    if isinstance(data, (bytes, str)):
        data = yaml.safe_load(data)
    return EventData.model_validate(data or {})


def write_event(event: ModuleEvent, out: IO):
    out.write(event.model_dump_json(exclude_none=True))
