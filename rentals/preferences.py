"""Implicit preference learning from property actions."""

from __future__ import annotations

from listings.schema import PropertyCandidate
from rentals.models.events import ActionVerb
from rentals.models.profile import UserPreferenceProfile

# How strongly each action signals interest in the property's type.
INTERACTION_WEIGHTS: dict[str, float] = {
    ActionVerb.VIEW.value: 1,
    ActionVerb.GALLERY.value: 1,
    ActionVerb.DETAILS.value: 1,
    ActionVerb.SHARE.value: 2,
    ActionVerb.SAVE.value: 3,
    ActionVerb.CONTACT.value: 4,
    ActionVerb.BOOK.value: 5,
}
PREFERRED_TYPE_THRESHOLD = 5


def reinforce(
    profile: UserPreferenceProfile,
    candidate: PropertyCandidate,
    verb: ActionVerb | str,
) -> UserPreferenceProfile:
    """Return a copy of ``profile`` with the candidate's type score raised.

    Once a type's accumulated score reaches the threshold it is added to
    ``preferred_property_types``. Unknown verbs leave the profile unchanged.
    """
    key = verb.value if isinstance(verb, ActionVerb) else verb
    weight = INTERACTION_WEIGHTS.get(key, 0)
    if not weight or not candidate.property_type:
        return profile

    property_type = candidate.property_type
    scores = dict(profile.type_scores)
    scores[property_type] = scores.get(property_type, 0) + weight

    preferred = list(profile.preferred_property_types)
    if scores[property_type] >= PREFERRED_TYPE_THRESHOLD and property_type not in preferred:
        preferred.append(property_type)

    return profile.model_copy(
        update={"type_scores": scores, "preferred_property_types": preferred},
        deep=True,
    )
