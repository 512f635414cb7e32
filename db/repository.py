"""
Repository — точка доступа движка к данным.

Движок и сценарии получают объект с этими методами через конструктор
и не импортируют db.queries напрямую. В тестах вместо него
подставляется хранилище в памяти с теми же методами.
"""

from db import queries


class Repository:
    """Фасад над функциями db.queries"""

    # Аккаунты
    get_account_by_telegram_id = staticmethod(queries.get_account_by_telegram_id)
    get_account_by_email = staticmethod(queries.get_account_by_email)
    get_accounts_by_username = staticmethod(queries.get_accounts_by_username)
    create_account = staticmethod(queries.create_account)
    delete_account = staticmethod(queries.delete_account)

    # Заявки
    create_application = staticmethod(queries.create_application)
    get_application = staticmethod(queries.get_application)
    get_account_applications = staticmethod(queries.get_account_applications)
    get_pending_applications = staticmethod(queries.get_pending_applications)
    count_applications_by_status = staticmethod(queries.count_applications_by_status)
    update_application = staticmethod(queries.update_application)
    approve_application = staticmethod(queries.approve_application)
    reject_application = staticmethod(queries.reject_application)

    # Студенты
    get_student = staticmethod(queries.get_student)
    get_assignable_students = staticmethod(queries.get_assignable_students)
    find_students_by_last_name = staticmethod(queries.find_students_by_last_name)
    get_students_for_reminders = staticmethod(queries.get_students_for_reminders)
    count_active_students = staticmethod(queries.count_active_students)
    get_students_starting = staticmethod(queries.get_students_starting)
    get_students_ending = staticmethod(queries.get_students_ending)

    # Задания
    get_task = staticmethod(queries.get_task)
    get_student_tasks = staticmethod(queries.get_student_tasks)
    create_task = staticmethod(queries.create_task)

    # Решения
    get_submission = staticmethod(queries.get_submission)
    submit_solution = staticmethod(queries.submit_solution)
