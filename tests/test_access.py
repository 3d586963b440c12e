import pytest
from sqlalchemy.exc import OperationalError

from timbel.config.settings import Settings
from timbel.models import UserRole
from timbel.utils.access import AccessResolver, same_group


@pytest.mark.parametrize(
    "viewer, target, expected",
    [
        ("super", "carol", True),
        ("admin", "alice", True),
        ("manager", "bob", True),       # same department, other team
        ("manager", "carol", False),    # other department
        ("leader", "alice", True),      # same team
        ("leader", "bob", False),       # same department, other team
        ("alice", "bob", False),
        ("alice", "manager", False),
        ("carol", "admin", False),
    ],
)
def test_can_view_by_role(db, people, viewer, target, expected):
    assert AccessResolver(db).can_view(viewer, target) is expected


def test_can_view_self_for_every_role(db, people):
    resolver = AccessResolver(db)
    for user_id in people:
        assert resolver.can_view(user_id, user_id) is True


def test_can_view_is_not_symmetric(db, people):
    resolver = AccessResolver(db)
    assert resolver.can_view("manager", "alice") is True
    assert resolver.can_view("alice", "manager") is False


def test_missing_records_fail_closed(db, people):
    resolver = AccessResolver(db)
    assert resolver.can_view("ghost", "alice") is False
    assert resolver.can_view("manager", "ghost") is False
    assert resolver.can_view("super", "ghost") is False


def test_manager_moved_to_other_department_loses_access(db, people):
    resolver = AccessResolver(db)
    assert resolver.can_view("manager", "alice") is True

    people["manager"].department_id = "D2"
    db.commit()

    assert resolver.can_view("manager", "alice") is False
    assert resolver.can_view("manager", "carol") is True


def test_unassigned_users_match_by_default(db, org, make_user, monkeypatch):
    monkeypatch.setattr(Settings, "MATCH_UNASSIGNED_ORG", True)
    make_user("floating_manager", UserRole.MANAGER)
    make_user("floating_member", UserRole.MEMBER)

    assert AccessResolver(db).can_view("floating_manager", "floating_member") is True


def test_unassigned_match_can_be_switched_off(db, org, make_user, monkeypatch):
    monkeypatch.setattr(Settings, "MATCH_UNASSIGNED_ORG", False)
    make_user("floating_manager", UserRole.MANAGER)
    make_user("floating_member", UserRole.MEMBER)

    resolver = AccessResolver(db)
    assert resolver.can_view("floating_manager", "floating_member") is False
    assert [u.id for u in resolver.list_visible_users("floating_manager")] == ["floating_manager"]


def test_same_group():
    assert same_group("D1", "D1") is True
    assert same_group("D1", "D2") is False
    assert same_group("D1", None) is False


def test_list_visible_users(db, people):
    resolver = AccessResolver(db)

    assert resolver.get_visible_user_ids("super") == set(people)
    assert resolver.get_visible_user_ids("admin") == set(people)
    assert resolver.get_visible_user_ids("manager") == {"manager", "leader", "alice", "bob"}
    assert resolver.get_visible_user_ids("leader") == {"manager", "leader", "alice"}
    assert resolver.get_visible_user_ids("alice") == {"alice"}
    assert resolver.get_visible_user_ids("ghost") == set()


def test_list_visible_users_sorted_by_name(db, people):
    names = [u.full_name for u in AccessResolver(db).list_visible_users("super")]
    assert names == sorted(names)


def test_backend_fault_denies(db, people, monkeypatch):
    resolver = AccessResolver(db)

    def broken(user_id):
        raise OperationalError("SELECT", {}, Exception("connection lost"))

    monkeypatch.setattr(resolver, "_get_user", broken)

    assert resolver.can_view("super", "alice") is False
    assert resolver.list_visible_users("super") == []
    # Own data never needs a lookup
    assert resolver.can_view("alice", "alice") is True
