"""Companies and users."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from metacrud.core.ir import Entity, FieldKind, FieldMeta


class Company(Entity):
    name: Annotated[
        str | None,
        FieldMeta(display_name="Company Name", required=True, order=0, max_length=255),
    ] = None
    description: Annotated[
        str | None,
        FieldMeta(display_name="Description", kind=FieldKind.LONG_TEXT, order=1, max_length=2000),
    ] = None
    address: Annotated[
        str | None, FieldMeta(display_name="Address", order=10, max_length=500)
    ] = None
    phone: Annotated[str | None, FieldMeta(display_name="Phone", order=11, max_length=50)] = None
    email: Annotated[str | None, FieldMeta(display_name="Email", order=12, max_length=255)] = None
    website: Annotated[
        str | None, FieldMeta(display_name="Website", order=13, max_length=255)
    ] = None
    enabled: Annotated[
        bool, FieldMeta(display_name="Enabled", order=20, default_value="true")
    ] = True
    created_date: Annotated[
        datetime | None, FieldMeta(display_name="Created", read_only=True, order=80)
    ] = None
    last_modified_date: Annotated[
        datetime | None, FieldMeta(display_name="Last Modified", read_only=True, order=81)
    ] = None


class User(Entity):
    name: Annotated[
        str | None, FieldMeta(display_name="First Name", required=True, order=0, max_length=255)
    ] = None
    lastname: Annotated[
        str | None, FieldMeta(display_name="Last Name", order=1, max_length=255)
    ] = None
    login: Annotated[
        str | None, FieldMeta(display_name="Login", required=True, order=2, max_length=50)
    ] = None
    email: Annotated[
        str | None, FieldMeta(display_name="Email", required=True, order=3, max_length=255)
    ] = None
    phone: Annotated[str | None, FieldMeta(display_name="Phone", order=4, max_length=50)] = None
    company: Annotated[
        Company | None,
        FieldMeta(display_name="Company", order=10, lookup_provider_ref="companyService"),
    ] = None
    roles: Annotated[
        str,
        FieldMeta(
            display_name="Roles",
            description="Comma separated roles",
            order=20,
            max_length=255,
            default_value="USER",
        ),
    ] = "USER"
    enabled: Annotated[
        bool, FieldMeta(display_name="Enabled", order=21, default_value="true")
    ] = True
    password_hash: Annotated[
        str | None, FieldMeta(display_name="Password", hidden=True, order=99)
    ] = None
    created_date: Annotated[
        datetime | None, FieldMeta(display_name="Created", read_only=True, order=80)
    ] = None
    last_modified_date: Annotated[
        datetime | None, FieldMeta(display_name="Last Modified", read_only=True, order=81)
    ] = None
