"""
Recurring expense service: copies monthly bills into the current month.
"""
import logging
from datetime import date
from typing import Dict
from sqlalchemy.orm import Session, joinedload
from divvy.models.expense import Expense, ExpenseSplit

logger = logging.getLogger(__name__)


def _already_rolled_over(expense: Expense, today: date) -> bool:
    last = expense.last_recurring_date or expense.date
    return last.year == today.year and last.month == today.month


def process_recurring_expenses(group_id: int, db: Session, today: date = None) -> Dict[str, int]:
    """
    Create this month's copy of every recurring expense in a group.

    Each copy keeps amount, currency, category, payer and splits, is dated
    `today`, and is not itself recurring. Templates that already produced a
    copy this month are skipped, as are templates whose copy fails to save.
    """
    if not group_id:
        logger.warning("process_recurring_expenses called without a group id")
        return {"processed": 0, "skipped": 0}

    today = today or date.today()
    processed = 0
    skipped = 0

    templates = db.query(Expense).options(
        joinedload(Expense.splits)
    ).filter(
        Expense.group_id == group_id,
        Expense.is_recurring.is_(True)
    ).all()

    for template in templates:
        if _already_rolled_over(template, today):
            skipped += 1
            continue

        try:
            copy = Expense(
                group_id=template.group_id,
                paid_by=template.paid_by,
                date=today,
                amount=template.amount,
                currency=template.currency,
                category=template.category,
                description=template.description,
                icon=template.icon,
                is_recurring=False
            )
            db.add(copy)
            db.flush()

            for split in template.splits:
                db.add(ExpenseSplit(
                    expense_id=copy.id,
                    user_id=split.user_id,
                    share_amount=split.share_amount
                ))

            template.last_recurring_date = today
            db.commit()
            processed += 1
        except Exception as e:
            db.rollback()
            logger.error(f"Error creating recurring expense from {template.id}: {e}", exc_info=True)
            skipped += 1

    if processed:
        logger.info(f"Processed {processed} recurring expenses for group {group_id}")
    return {"processed": processed, "skipped": skipped}
