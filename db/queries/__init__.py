"""
Функции для работы с базой данных.

Модули:
- accounts.py: аккаунты студентов (student_users)
- applications.py: заявки на практику, одобрение и отклонение
- institutions.py: учебные заведения
- students.py: записи студентов, выборки для напоминаний и дайджеста
- tasks.py: задания
- submissions.py: решения заданий
"""

from .accounts import (
    get_account_by_telegram_id,
    get_account_by_email,
    get_accounts_by_username,
    create_account,
    delete_account,
)

from .applications import (
    create_application,
    get_application,
    get_account_applications,
    get_pending_applications,
    count_applications_by_status,
    update_application,
    approve_application,
    reject_application,
)

from .students import (
    get_student,
    get_assignable_students,
    find_students_by_last_name,
    get_students_for_reminders,
    count_active_students,
    get_students_starting,
    get_students_ending,
)

from .tasks import (
    get_task,
    get_student_tasks,
    create_task,
)

from .submissions import (
    get_submission,
    submit_solution,
)

__all__ = [
    # accounts
    'get_account_by_telegram_id',
    'get_account_by_email',
    'get_accounts_by_username',
    'create_account',
    'delete_account',

    # applications
    'create_application',
    'get_application',
    'get_account_applications',
    'get_pending_applications',
    'count_applications_by_status',
    'update_application',
    'approve_application',
    'reject_application',

    # students
    'get_student',
    'get_assignable_students',
    'find_students_by_last_name',
    'get_students_for_reminders',
    'count_active_students',
    'get_students_starting',
    'get_students_ending',

    # tasks
    'get_task',
    'get_student_tasks',
    'create_task',

    # submissions
    'get_submission',
    'submit_solution',
]
