from datetime import date, timedelta

import pytest

from models import db, Goal, ACTIVE, CANCELLED, COMPLETED
from finance.errors import NotFoundError, ValidationError
from finance.goals import (
    compute_progress,
    create_goal,
    delete_goal,
    get_goal,
    list_goals,
    recent_goals,
    resolve_status,
    update_goal,
    update_progress,
)


def in_days(n):
    return (date.today() + timedelta(days=n)).isoformat()


def new_goal(owner, **overrides):
    payload = {'name': 'Trip', 'targetAmount': 200, 'deadline': in_days(30)}
    payload.update(overrides)
    return create_goal(owner, payload)


@pytest.mark.parametrize('current, target, expected', [
    (50, 200, 25),
    (0, 200, 0),
    (200, 200, 100),
    (250, 200, 100),
    (1, 8, 13),  # 12.5 rounds half-up
    (1, 3, 33),
    (10, 0, 0),
    (-5, 100, 0),
])
def test_compute_progress(current, target, expected):
    assert compute_progress(current, target) == expected


def test_resolve_status():
    assert resolve_status(ACTIVE, 200, 200) == COMPLETED
    assert resolve_status(CANCELLED, 300, 200) == COMPLETED
    assert resolve_status(COMPLETED, 100, 200) == ACTIVE
    assert resolve_status(CANCELLED, 100, 200) == CANCELLED
    assert resolve_status(ACTIVE, 100, 200) == ACTIVE


def test_create_defaults(make_user):
    owner = make_user()
    goal = new_goal(owner, category='Travel')
    assert goal.current_amount == 0
    assert goal.status == ACTIVE
    assert goal.progress == 0
    assert goal.category == 'Travel'
    assert goal.description is None


def test_create_with_progress(make_user):
    goal = new_goal(make_user(), currentAmount=50)
    assert goal.progress == 25
    assert goal.status == ACTIVE


def test_create_already_reached_is_completed(make_user):
    goal = new_goal(make_user(), currentAmount='250')
    assert goal.status == COMPLETED
    assert goal.progress == 100


def test_deadline_today_ok_yesterday_rejected(make_user):
    owner = make_user()
    assert new_goal(owner, deadline=in_days(0)).deadline == date.today()
    with pytest.raises(ValidationError, match='past'):
        new_goal(owner, deadline=in_days(-1))


def test_deadline_accepts_iso_datetime(make_user):
    goal = new_goal(make_user(), deadline=in_days(3) + 'T23:59:00Z')
    assert goal.deadline == date.today() + timedelta(days=3)


@pytest.mark.parametrize('overrides', [
    {'name': ''},
    {'name': None},
    {'targetAmount': None},
    {'deadline': ''},
    {'targetAmount': 0},
    {'targetAmount': -10},
    {'targetAmount': 'abc'},
    {'targetAmount': True},
    {'currentAmount': -1},
    {'currentAmount': 'ten'},
    {'deadline': 'not a date'},
])
def test_create_rejects_bad_input(make_user, overrides):
    owner = make_user()
    with pytest.raises(ValidationError):
        new_goal(owner, **overrides)
    assert Goal.query.count() == 0


def test_update_reaching_target_completes_then_reverts(make_user):
    owner = make_user()
    goal = new_goal(owner)
    goal = update_goal(owner, str(goal.id), {'currentAmount': 200})
    assert goal.status == COMPLETED
    assert goal.progress == 100
    goal = update_goal(owner, str(goal.id), {'currentAmount': 150})
    assert goal.status == ACTIVE
    assert goal.progress == 75


def test_update_raising_target_reopens_completed_goal(make_user):
    owner = make_user()
    goal = new_goal(owner, currentAmount=200)
    assert goal.status == COMPLETED
    goal = update_goal(owner, str(goal.id), {'targetAmount': 400})
    assert goal.status == ACTIVE
    assert goal.progress == 50


def test_explicit_status_overrides_rule(make_user):
    owner = make_user()
    goal = new_goal(owner)
    goal = update_goal(owner, str(goal.id), {'currentAmount': 300, 'status': 'active'})
    assert goal.status == ACTIVE
    goal = update_goal(owner, str(goal.id), {'status': 'cancelled'})
    assert goal.status == CANCELLED


def test_null_status_falls_back_to_rule(make_user):
    owner = make_user()
    goal = new_goal(owner)
    goal = update_goal(owner, str(goal.id), {'currentAmount': 200, 'status': None})
    assert goal.status == COMPLETED


def test_cancelled_goal_stays_cancelled_below_target(make_user):
    owner = make_user()
    goal = new_goal(owner)
    update_goal(owner, str(goal.id), {'status': 'cancelled'})
    goal = update_goal(owner, str(goal.id), {'currentAmount': 20})
    assert goal.status == CANCELLED


def test_update_is_partial_and_clears_optional_fields(make_user):
    owner = make_user()
    goal = new_goal(owner, category='Travel', description='Lisbon')
    goal = update_goal(owner, str(goal.id), {'category': None, 'description': ''})
    assert goal.category is None
    assert goal.description is None
    assert goal.name == 'Trip'
    assert goal.target_amount == 200


def test_failed_update_changes_nothing(make_user):
    owner = make_user()
    goal = new_goal(owner)
    with pytest.raises(ValidationError):
        update_goal(owner, str(goal.id), {'targetAmount': 500, 'currentAmount': -3})
    db.session.expire_all()
    goal = get_goal(owner, str(goal.id))
    assert goal.target_amount == 200
    assert goal.current_amount == 0


@pytest.mark.parametrize('payload', [
    {'status': 'paused'},
    {'deadline': in_days(-1)},
    {'name': '  '},
    {'targetAmount': 0},
])
def test_update_rejects_bad_fields(make_user, payload):
    owner = make_user()
    goal = new_goal(owner)
    with pytest.raises(ValidationError):
        update_goal(owner, str(goal.id), payload)


def test_stale_deadline_only_checked_when_supplied(make_user):
    owner = make_user()
    goal = new_goal(owner)
    goal.deadline = date.today() - timedelta(days=10)
    db.session.commit()
    goal = update_goal(owner, str(goal.id), {'name': 'Old trip'})
    assert goal.name == 'Old trip'


def test_update_progress_completes_goal(make_user):
    owner = make_user()
    goal = new_goal(owner, currentAmount=50)
    assert goal.progress == 25
    goal, completed = update_progress(owner, str(goal.id), 200)
    assert completed
    assert goal.status == COMPLETED
    assert goal.progress == 100


def test_update_progress_never_reverts_completion(make_user):
    owner = make_user()
    goal = new_goal(owner, currentAmount=200)
    goal, completed = update_progress(owner, str(goal.id), '20')
    assert not completed
    assert goal.status == COMPLETED
    assert goal.current_amount == 20
    assert goal.progress == 10


def test_update_progress_on_completed_goal_is_not_a_new_completion(make_user):
    owner = make_user()
    goal = new_goal(owner, currentAmount=200)
    assert goal.status == COMPLETED
    goal, completed = update_progress(owner, str(goal.id), 300)
    assert not completed
    assert goal.status == COMPLETED
    assert goal.current_amount == 300


def test_update_progress_below_target_keeps_status(make_user):
    owner = make_user()
    goal = new_goal(owner)
    goal, completed = update_progress(owner, str(goal.id), 20.5)
    assert not completed
    assert goal.status == ACTIVE


@pytest.mark.parametrize('amount', [0, '0', 0.0, None, '', -5, 'abc'])
def test_update_progress_rejects_amount(make_user, amount):
    owner = make_user()
    goal = new_goal(owner, currentAmount=10)
    with pytest.raises(ValidationError):
        update_progress(owner, str(goal.id), amount)
    assert get_goal(owner, str(goal.id)).current_amount == 10


def test_other_owner_sees_not_found(make_user):
    owner = make_user()
    intruder = make_user(email='eve@example.com', name='Eve')
    goal = new_goal(owner)
    with pytest.raises(NotFoundError) as foreign:
        get_goal(intruder, str(goal.id))
    with pytest.raises(NotFoundError) as missing:
        get_goal(intruder, '9999')
    assert str(foreign.value) == str(missing.value)
    with pytest.raises(NotFoundError):
        update_goal(intruder, str(goal.id), {'name': 'Mine'})
    with pytest.raises(NotFoundError):
        update_progress(intruder, str(goal.id), 10)
    with pytest.raises(NotFoundError):
        delete_goal(intruder, str(goal.id))
    assert get_goal(owner, str(goal.id)).name == 'Trip'


def test_invalid_id_is_validation_error(make_user):
    owner = make_user()
    with pytest.raises(ValidationError, match='Invalid id'):
        get_goal(owner, '7a')
    with pytest.raises(ValidationError, match='Invalid id'):
        update_progress(owner, '-7', 10)


def test_delete(make_user):
    owner = make_user()
    goal = new_goal(owner)
    delete_goal(owner, str(goal.id))
    assert list_goals(owner) == []


def test_list_orders_by_deadline_and_filters(make_user):
    owner = make_user()
    late = new_goal(owner, name='Late', deadline=in_days(90))
    soon = new_goal(owner, name='Soon', deadline=in_days(5), currentAmount=200)
    mid = new_goal(owner, name='Mid', deadline=in_days(20))
    new_goal(make_user(email='other@example.com'), name='Theirs')

    assert [g.name for g in list_goals(owner)] == ['Soon', 'Mid', 'Late']
    assert [g.id for g in list_goals(owner, status='completed')] == [soon.id]
    assert [g.id for g in list_goals(owner, status='active')] == [mid.id, late.id]
    assert len(list_goals(owner, status='bogus')) == 3


def test_recent_goals(make_user):
    owner = make_user()
    for name in ('First', 'Second', 'Third'):
        new_goal(owner, name=name)
    assert [g.name for g in recent_goals(owner)] == ['Third', 'Second']
    assert len(recent_goals(owner, limit=5)) == 3
