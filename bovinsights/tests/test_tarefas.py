import unittest

from supabase_mock import USER_ID, make_supabase_client, respond_with

from bovinsights.core.errors import NotFoundError, ValidationError
from bovinsights.services import tarefas


class TestTarefas(unittest.TestCase):
    def setUp(self):
        self.client, self.query = make_supabase_client()

    def test_list_tasks_orders_by_date_then_time_nulls_last(self):
        respond_with(self.query, [
            {"id": "t3", "due_date": "2025-07-11", "due_time": "07:00"},
            {"id": "t1", "due_date": "2025-07-10", "due_time": None},
            {"id": "t2", "due_date": "2025-07-10", "due_time": "09:30"},
        ])

        result = tarefas.list_tasks(self.client)

        self.client.table.assert_called_with("tarefas")
        self.query.eq.assert_any_call("user_id", USER_ID)
        self.assertEqual([t["id"] for t in result], ["t2", "t1", "t3"])

    def test_create_task_defaults(self):
        respond_with(self.query, [{"id": "t1"}])

        tarefas.create_task(self.client, {"title": " Vacinar lote A ", "due_date": "2025-07-10"})

        inserted = self.query.insert.call_args[0][0]
        self.assertEqual(inserted["title"], "Vacinar lote A")
        self.assertEqual(inserted["category"], "Geral")
        self.assertEqual(inserted["status"], "pending")
        self.assertIsNone(inserted["due_time"])
        self.assertEqual(inserted["user_id"], USER_ID)

    def test_create_task_invalid_category(self):
        with self.assertRaises(ValidationError):
            tarefas.create_task(self.client, {"title": "x", "due_date": "2025-07-10", "category": "Lazer"})

    def test_create_task_invalid_time(self):
        with self.assertRaises(ValidationError):
            tarefas.create_task(self.client, {"title": "x", "due_date": "2025-07-10", "due_time": "25:00"})
        self.query.insert.assert_not_called()

    def test_complete_and_reopen(self):
        respond_with(self.query, [{"id": "t1", "status": "completed"}], [{"id": "t1", "status": "pending"}])

        self.assertEqual(tarefas.complete_task(self.client, "t1")["status"], "completed")
        self.assertEqual(tarefas.reopen_task(self.client, "t1")["status"], "pending")
        self.query.update.assert_any_call({"status": "completed"})
        self.query.update.assert_any_call({"status": "pending"})

    def test_delete_missing_task(self):
        with self.assertRaises(NotFoundError):
            tarefas.delete_task(self.client, "t404")


if __name__ == '__main__':
    unittest.main()
