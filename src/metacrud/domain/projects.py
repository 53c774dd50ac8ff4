"""Projects and the project-scoped work items managed through generic screens."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Annotated

from metacrud.core.ir import Entity, FieldKind, FieldMeta

from .organization import Company, User


class Project(Entity):
    name: Annotated[
        str | None,
        FieldMeta(display_name="Project Name", required=True, order=0, max_length=255),
    ] = None
    description: Annotated[
        str | None,
        FieldMeta(display_name="Description", kind=FieldKind.LONG_TEXT, order=1, max_length=2000),
    ] = None
    company: Annotated[
        Company | None,
        FieldMeta(display_name="Company", order=2, lookup_provider_ref="companyService"),
    ] = None
    start_date: Annotated[
        date | None, FieldMeta(display_name="Start Date", order=10)
    ] = None
    end_date: Annotated[date | None, FieldMeta(display_name="End Date", order=11)] = None
    is_active: Annotated[
        bool, FieldMeta(display_name="Active", order=20, default_value="true")
    ] = True
    created_date: Annotated[
        datetime | None, FieldMeta(display_name="Created", read_only=True, order=80)
    ] = None
    last_modified_date: Annotated[
        datetime | None, FieldMeta(display_name="Last Modified", read_only=True, order=81)
    ] = None


class Activity(Entity):
    name: Annotated[
        str | None,
        FieldMeta(
            display_name="Activity Name",
            required=True,
            order=0,
            max_length=255,
            default_value="-",
        ),
    ] = None
    description: Annotated[
        str | None,
        FieldMeta(display_name="Description", kind=FieldKind.LONG_TEXT, order=1, max_length=2000),
    ] = None
    project: Annotated[
        Project | None,
        FieldMeta(
            display_name="Project", required=True, order=2, lookup_provider_ref="projectService"
        ),
    ] = None
    assigned_to: Annotated[
        User | None,
        FieldMeta(display_name="Assigned To", order=3, lookup_provider_ref="userService"),
    ] = None
    start_date: Annotated[date | None, FieldMeta(display_name="Start Date", order=10)] = None
    due_date: Annotated[date | None, FieldMeta(display_name="Due Date", order=11)] = None
    estimated_hours: Annotated[
        Decimal | None,
        FieldMeta(display_name="Estimated Hours", order=20, min_value=0, max_value=10000),
    ] = None
    progress: Annotated[
        int | None,
        FieldMeta(
            display_name="Progress %", order=21, min_value=0, max_value=100, default_value="0"
        ),
    ] = None
    created_date: Annotated[
        datetime | None, FieldMeta(display_name="Created", read_only=True, order=80)
    ] = None
    last_modified_date: Annotated[
        datetime | None, FieldMeta(display_name="Last Modified", read_only=True, order=81)
    ] = None
    internal_code: Annotated[
        str | None, FieldMeta(display_name="Internal Code", hidden=True, order=80)
    ] = None


class Meeting(Entity):
    name: Annotated[
        str | None,
        FieldMeta(display_name="Meeting Name", required=True, order=0, max_length=255),
    ] = None
    description: Annotated[
        str | None,
        FieldMeta(display_name="Description", kind=FieldKind.LONG_TEXT, order=1, max_length=2000),
    ] = None
    project: Annotated[
        Project | None,
        FieldMeta(
            display_name="Project", required=True, order=2, lookup_provider_ref="projectService"
        ),
    ] = None
    meeting_date: Annotated[
        datetime | None, FieldMeta(display_name="Start Time", order=10)
    ] = None
    end_date: Annotated[datetime | None, FieldMeta(display_name="End Time", order=11)] = None
    location: Annotated[
        str | None, FieldMeta(display_name="Location", order=12, max_length=255)
    ] = None
    participants: Annotated[
        list[User] | None,
        FieldMeta(display_name="Participants", order=20, lookup_provider_ref="userService"),
    ] = None
    attendees: Annotated[
        list[User] | None,
        FieldMeta(display_name="Attendees", order=21, lookup_provider_ref="userService"),
    ] = None
    minutes: Annotated[
        str | None,
        FieldMeta(display_name="Minutes", kind=FieldKind.LONG_TEXT, order=30, max_length=4000),
    ] = None
    created_date: Annotated[
        datetime | None, FieldMeta(display_name="Created", read_only=True, order=80)
    ] = None
    last_modified_date: Annotated[
        datetime | None, FieldMeta(display_name="Last Modified", read_only=True, order=81)
    ] = None


class Decision(Entity):
    name: Annotated[
        str | None,
        FieldMeta(display_name="Decision", required=True, order=0, max_length=255),
    ] = None
    description: Annotated[
        str | None,
        FieldMeta(display_name="Description", kind=FieldKind.LONG_TEXT, order=1, max_length=2000),
    ] = None
    project: Annotated[
        Project | None,
        FieldMeta(
            display_name="Project", required=True, order=2, lookup_provider_ref="projectService"
        ),
    ] = None
    accountable: Annotated[
        User | None,
        FieldMeta(display_name="Accountable", order=3, lookup_provider_ref="userService"),
    ] = None
    estimated_cost: Annotated[
        Decimal | None, FieldMeta(display_name="Estimated Cost", order=10, min_value=0)
    ] = None
    decision_date: Annotated[
        date | None, FieldMeta(display_name="Decision Date", order=11)
    ] = None
    approved: Annotated[
        bool, FieldMeta(display_name="Approved", order=12, default_value="false")
    ] = False
    created_date: Annotated[
        datetime | None, FieldMeta(display_name="Created", read_only=True, order=80)
    ] = None
    last_modified_date: Annotated[
        datetime | None, FieldMeta(display_name="Last Modified", read_only=True, order=81)
    ] = None


class Risk(Entity):
    name: Annotated[
        str | None, FieldMeta(display_name="Risk", required=True, order=0, max_length=255)
    ] = None
    description: Annotated[
        str | None,
        FieldMeta(display_name="Description", kind=FieldKind.LONG_TEXT, order=1, max_length=2000),
    ] = None
    project: Annotated[
        Project | None,
        FieldMeta(
            display_name="Project", required=True, order=2, lookup_provider_ref="projectService"
        ),
    ] = None
    severity: Annotated[
        int | None,
        FieldMeta(display_name="Severity", order=10, min_value=1, max_value=5, default_value="3"),
    ] = None
    probability: Annotated[
        int | None,
        FieldMeta(
            display_name="Probability", order=11, min_value=1, max_value=5, default_value="3"
        ),
    ] = None
    mitigation: Annotated[
        str | None,
        FieldMeta(display_name="Mitigation", kind=FieldKind.LONG_TEXT, order=20, max_length=2000),
    ] = None
    created_date: Annotated[
        datetime | None, FieldMeta(display_name="Created", read_only=True, order=80)
    ] = None
    last_modified_date: Annotated[
        datetime | None, FieldMeta(display_name="Last Modified", read_only=True, order=81)
    ] = None


class Order(Entity):
    name: Annotated[
        str | None, FieldMeta(display_name="Order", required=True, order=0, max_length=255)
    ] = None
    description: Annotated[
        str | None,
        FieldMeta(display_name="Description", kind=FieldKind.LONG_TEXT, order=1, max_length=2000),
    ] = None
    project: Annotated[
        Project | None,
        FieldMeta(
            display_name="Project", required=True, order=2, lookup_provider_ref="projectService"
        ),
    ] = None
    provider: Annotated[
        Company | None,
        FieldMeta(display_name="Provider", order=3, lookup_provider_ref="companyService"),
    ] = None
    order_date: Annotated[date | None, FieldMeta(display_name="Order Date", order=10)] = None
    delivery_date: Annotated[
        date | None, FieldMeta(display_name="Delivery Date", order=11)
    ] = None
    amount: Annotated[
        Decimal | None, FieldMeta(display_name="Amount", order=12, min_value=0)
    ] = None
    currency: Annotated[
        str, FieldMeta(display_name="Currency", order=13, max_length=3, default_value="EUR")
    ] = "EUR"
    created_date: Annotated[
        datetime | None, FieldMeta(display_name="Created", read_only=True, order=80)
    ] = None
    last_modified_date: Annotated[
        datetime | None, FieldMeta(display_name="Last Modified", read_only=True, order=81)
    ] = None
