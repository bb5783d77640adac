"""Unit tests for savings goal projection"""

from datetime import date, timedelta
from financial_shift.domain.goals import calculate_goal_projection
from financial_shift.domain.models import Goal

AS_OF = date(2024, 1, 1)


def goal(target: float = 12_000.0, current: float = 0.0, days_left: int = 360) -> Goal:
    return Goal(name="emergency fund", target_amount=target, current_amount=current, target_date=AS_OF + timedelta(days=days_left))


def test_contribution_meeting_required_rate_is_on_track():
    """Test 12 thirty-day months to save $12k at $1k/month"""
    projection = calculate_goal_projection(goal(), 1_000.0, as_of=AS_OF)

    assert projection.remaining_amount == 12_000.0
    assert projection.required_monthly_contribution == 1_000.0
    assert projection.months_to_completion == 12
    assert projection.projected_completion_date == date(2025, 1, 1)
    assert projection.on_track is True
    assert projection.completion_percentage == 0.0


def test_short_contribution_is_behind():
    """Test half the required rate takes twice as long"""
    projection = calculate_goal_projection(goal(current=3_000.0), 375.0, as_of=AS_OF)

    assert projection.required_monthly_contribution == 750.0
    assert projection.months_to_completion == 24
    assert projection.on_track is False
    assert projection.completion_percentage == 25.0


def test_overfunded_goal():
    """Test current above target: nothing remaining, percentage over 100"""
    projection = calculate_goal_projection(goal(current=15_000.0), 0.0, as_of=AS_OF)

    assert projection.remaining_amount == 0.0
    assert projection.months_to_completion == 0
    assert projection.projected_completion_date == AS_OF
    assert projection.on_track is True
    assert projection.completion_percentage == 125.0


def test_no_contribution_never_completes():
    """Test unfunded goal without contributions has no completion date"""
    projection = calculate_goal_projection(goal(), 0.0, as_of=AS_OF)

    assert projection.months_to_completion is None
    assert projection.projected_completion_date is None
    assert projection.on_track is False


def test_missed_deadline_requires_full_remaining():
    """Test past target date: the whole gap is due now"""
    projection = calculate_goal_projection(goal(current=2_000.0, days_left=-10), 5_000.0, as_of=AS_OF)

    assert projection.required_monthly_contribution == 10_000.0
    assert projection.on_track is False


def test_zero_target_is_complete():
    """Test zero target counts as fully funded"""
    projection = calculate_goal_projection(goal(target=0.0), 0.0, as_of=AS_OF)

    assert projection.completion_percentage == 100.0
    assert projection.on_track is True


def test_completion_past_last_date_has_no_projected_date():
    """Test a tiny contribution projects months but no calendar date"""
    far_goal = Goal(name="house", target_amount=1_000_000.0, current_amount=0.0, target_date=date(2030, 1, 1))
    projection = calculate_goal_projection(far_goal, 0.01, as_of=date(2025, 1, 1))

    assert projection.months_to_completion > 12 * 8_000
    assert projection.projected_completion_date is None
    assert projection.on_track is False


def test_completion_on_last_representable_month():
    """Test the projection still dates completions up to December 9999"""
    projection = calculate_goal_projection(goal(target=1_000.0), 1.0, as_of=date(9999, 1, 1))

    assert projection.months_to_completion == 1_000
    assert projection.projected_completion_date is None

    near = calculate_goal_projection(goal(target=11.0), 1.0, as_of=date(9999, 1, 1))
    assert near.projected_completion_date == date(9999, 12, 1)
