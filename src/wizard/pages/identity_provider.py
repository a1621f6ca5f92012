"""
Add Identity Provider wizard

SAML providers need a metadata document URL; OpenID Connect providers need
an HTTPS issuer URL and an audience. Switching the provider type clears the
type-specific fields.
"""

from typing import Any, Dict, Mapping

from ..definition import Step, WizardDefinition
from ..fields import FieldSpec, FieldType, static_options
from ..validation import Items, Length, Pattern, Required, Url, When

PROVIDER_TYPES = [
    ("saml", "SAML"),
    ("oidc", "OpenID Connect"),
]

MAX_TAGS = 50


def _is_saml(store: Mapping[str, Any]) -> bool:
    return store.get("provider_type") == "saml"


def _is_oidc(store: Mapping[str, Any]) -> bool:
    return store.get("provider_type") == "oidc"


TAG_FIELDS = (
    FieldSpec("key", "Tag key", rules=[Required(), Length(maximum=128)]),
    FieldSpec("value", "Tag value", rules=[Length(maximum=256)]),
)


def assemble(values: Dict[str, Any]) -> Dict[str, Any]:
    payload = {
        "type": values["provider_type"],
        "name": values["provider_name"],
        "tags": {tag["key"]: tag.get("value", "") for tag in values.get("tags") or [] if tag.get("key")},
    }
    if _is_saml(values):
        payload["metadata_url"] = values["metadata_url"].strip()
    else:
        payload["url"] = values["issuer_url"].strip()
        payload["client_ids"] = [values["audience"].strip()]
    return payload


DEFINITION = WizardDefinition(
    id="add-identity-provider",
    title="Add identity provider",
    resource_type="identity-provider",
    steps=(
        Step(
            "provider_type",
            "Provider type",
            fields=(
                FieldSpec(
                    "provider_type",
                    "Provider type",
                    FieldType.SELECT,
                    default="saml",
                    options=static_options(PROVIDER_TYPES),
                    rules=[Required()],
                ),
            ),
        ),
        Step(
            "configure",
            "Configure provider",
            fields=(
                FieldSpec(
                    "provider_name",
                    "Provider name",
                    rules=[
                        Required("Provider name is required"),
                        Pattern(
                            r"[\w+=,.@-]+",
                            "Provider name can only contain alphanumeric characters and the following: +=,.@-",
                        ),
                        Length(maximum=128, message="Provider name must be 128 characters or fewer"),
                    ],
                ),
                FieldSpec(
                    "metadata_url",
                    "Metadata document URL",
                    depends_on={"provider_type"},
                    rules=[
                        When(
                            _is_saml,
                            Required("Metadata URL is required"),
                            Url(message="Please enter a valid URL"),
                        )
                    ],
                ),
                FieldSpec(
                    "issuer_url",
                    "Provider URL",
                    depends_on={"provider_type"},
                    rules=[
                        When(
                            _is_oidc,
                            Required("Provider URL is required"),
                            Url(),
                            Url(https_only=True, message="Provider URL must use HTTPS"),
                        )
                    ],
                ),
                FieldSpec(
                    "audience",
                    "Audience",
                    depends_on={"provider_type"},
                    rules=[When(_is_oidc, Required("Audience is required"), Length(maximum=255))],
                ),
            ),
        ),
        Step(
            "tags",
            "Add tags",
            optional=True,
            fields=(
                FieldSpec(
                    "tags",
                    "Tags",
                    FieldType.STRUCT_LIST,
                    rules=[
                        Length(maximum=MAX_TAGS, message=f"You can add up to {MAX_TAGS} tags"),
                        Items(*TAG_FIELDS),
                    ],
                ),
            ),
        ),
        Step("review", "Review"),
    ),
    assemble=assemble,
)
