import pytest

from matcher_helpers import make_cat
from meowtion.apps.cat_matcher.core.models import ImageSource
from meowtion.apps.cat_matcher.core.roster import ReferenceRoster


@pytest.fixture
def oreo_twix_roster() -> ReferenceRoster:
    return ReferenceRoster([make_cat("Oreo", 2), make_cat("Twix", 1)])


@pytest.fixture
def user_source() -> ImageSource:
    return ImageSource(data=b"user-photo", media_type="image/jpeg")
