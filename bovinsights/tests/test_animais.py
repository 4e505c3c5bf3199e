import datetime
import unittest
from unittest.mock import MagicMock

from supabase_mock import USER_ID, make_supabase_client, respond_with

from bovinsights.core.errors import NotFoundError, UnauthenticatedError, ValidationError
from bovinsights.services import animais

NOVO_ANIMAL = {
    "brinco": " BR-0042 ",
    "sexo": "Macho",
    "raca": "Nelore",
    "tipo": "Engorda",
    "data_entrada": "2025-03-01",
    "peso_entrada": 360.26,
    "preco_arroba_compra": 300,
    "data_nascimento": "2023-03-01",
    "lote_id": "l1",
}


class TestAnimais(unittest.TestCase):
    def setUp(self):
        self.client, self.query = make_supabase_client()

    def test_with_details_uses_first_and_last_weighing(self):
        animal = {"id": "a1", "peso_atual": 450.0}
        weighings = [
            {"peso": 450.0, "data_pesagem": "2025-03-02"},
            {"peso": 360.0, "data_pesagem": "2025-01-01"},
            {"peso": 400.0, "data_pesagem": "2025-01-31"},
        ]

        result = animais.with_details(animal, weighings)

        self.assertEqual(result["total_pesagens"], 3)
        self.assertEqual(result["ultima_pesagem"], "2025-03-02")
        self.assertEqual(result["ganho_total"], 90.0)
        self.assertEqual(result["gmd"], 1.5)
        self.assertEqual(result["arroba_atual"], 15.0)

    def test_with_details_single_weighing(self):
        result = animais.with_details({"id": "a1", "peso_entrada": 300.0}, [{"peso": 300.0, "data_pesagem": "2025-01-01"}])
        self.assertIsNone(result["gmd"])
        self.assertIsNone(result["ganho_total"])
        self.assertEqual(result["arroba_atual"], 10.0)

    def test_list_animals_fetches_weighings_once(self):
        respond_with(
            self.query,
            [{"id": "a1", "brinco": "001", "peso_atual": 330.0}, {"id": "a2", "brinco": "002", "peso_atual": 300.0}],
            [
                {"animal_id": "a1", "peso": 300.0, "data_pesagem": "2025-01-01"},
                {"animal_id": "a1", "peso": 330.0, "data_pesagem": "2025-01-31"},
            ],
        )

        result = animais.list_animals(self.client, lot_id="l1")

        self.query.eq.assert_any_call("lote_id", "l1")
        self.query.order.assert_any_call("brinco", desc=False)
        self.query.in_.assert_called_once_with("animal_id", ["a1", "a2"])
        self.assertEqual(result[0]["gmd"], 1.0)
        self.assertEqual(result[1]["total_pesagens"], 0)

    def test_list_animals_empty_skips_weighings(self):
        self.assertEqual(animais.list_animals(self.client), [])
        self.query.order.assert_called_once_with("created_at", desc=True)
        self.query.in_.assert_not_called()

    def test_search_animals_by_tag_or_name(self):
        respond_with(
            self.query,
            [
                {"id": "a1", "brinco": "BR-0042", "nome": None},
                {"id": "a2", "brinco": "BR-0099", "nome": "Estrela"},
                {"id": "a3", "brinco": "XX-1", "nome": "Trovão"},
            ],
            [],
        )

        result = animais.search_animals(self.client, "estrela", {"sexo": "Fêmea"})

        self.query.eq.assert_any_call("sexo", "Fêmea")
        self.assertEqual([a["id"] for a in result], ["a2"])

    def test_search_animals_rejects_unknown_breed(self):
        with self.assertRaises(ValidationError):
            animais.search_animals(self.client, filters={"raca": "Zebu Imaginário"})
        self.query.execute.assert_not_called()

    def test_get_missing_animal(self):
        with self.assertRaises(NotFoundError) as ctx:
            animais.get_animal_by_id(self.client, "a404")
        self.assertEqual(ctx.exception.message, "Animal não encontrado")

    def test_create_animal_derives_fields_and_entry_weighing(self):
        respond_with(self.query, [{"id": "a1", "brinco": "BR-0042"}], [{"id": "p1"}])

        animais.create_animal(self.client, dict(NOVO_ANIMAL), today=datetime.date(2025, 3, 1))

        inserted = self.query.insert.call_args_list[0][0][0]
        self.assertEqual(inserted["brinco"], "BR-0042")
        self.assertEqual(inserted["peso_entrada"], 360.3)
        self.assertEqual(inserted["peso_atual"], 360.3)
        self.assertEqual(inserted["valor_total_compra"], 3603.0)
        self.assertEqual(inserted["idade_meses"], 24)
        self.assertEqual(inserted["status"], "Ativo")
        self.assertEqual(inserted["usuario_id"], USER_ID)

        entry_weighing = self.query.insert.call_args_list[1][0][0]
        self.client.table.assert_any_call("pesagens")
        self.assertEqual(entry_weighing["animal_id"], "a1")
        self.assertEqual(entry_weighing["peso"], 360.3)
        self.assertEqual(entry_weighing["data_pesagem"], "2025-03-01")
        self.assertEqual(entry_weighing["lote_id"], "l1")

    def test_create_animal_keeps_informed_purchase_value(self):
        respond_with(self.query, [{"id": "a1"}], [{"id": "p1"}])
        animais.create_animal(self.client, {**NOVO_ANIMAL, "valor_total_compra": 3500, "idade_meses": 20})
        inserted = self.query.insert.call_args_list[0][0][0]
        self.assertEqual(inserted["valor_total_compra"], 3500)
        self.assertEqual(inserted["idade_meses"], 20)

    def test_create_animal_survives_entry_weighing_failure(self):
        self.query.execute.side_effect = [
            MagicMock(data=[{"id": "a1"}]),
            Exception("timeout"),
        ]
        animal = animais.create_animal(self.client, dict(NOVO_ANIMAL))
        self.assertEqual(animal["id"], "a1")

    def test_create_animal_requires_tag(self):
        with self.assertRaises(ValidationError) as ctx:
            animais.create_animal(self.client, {**NOVO_ANIMAL, "brinco": "  "})
        self.assertEqual(ctx.exception.message, "O campo 'Brinco' é obrigatório.")
        self.query.insert.assert_not_called()

    def test_create_animal_invalid_sex(self):
        with self.assertRaises(ValidationError):
            animais.create_animal(self.client, {**NOVO_ANIMAL, "sexo": "M"})
        self.query.insert.assert_not_called()

    def test_update_animal_recomputes_purchase_value(self):
        respond_with(
            self.query,
            [{"id": "a1", "peso_entrada": 360.0, "preco_arroba_compra": 300}],
            [],
            [{"id": "a1", "preco_arroba_compra": 320}],
        )

        animais.update_animal(self.client, "a1", {"preco_arroba_compra": 320})

        changes = self.query.update.call_args[0][0]
        self.assertEqual(changes["valor_total_compra"], 3840.0)

    def test_update_animal_rounds_weight_without_refetch_when_value_given(self):
        respond_with(self.query, [{"id": "a1"}])
        animais.update_animal(self.client, "a1", {"peso_atual": 401.27, "valor_total_compra": 4000})
        changes = self.query.update.call_args[0][0]
        self.assertEqual(changes, {"peso_atual": 401.3, "valor_total_compra": 4000})

    def test_delete_animal_removes_weighings_first(self):
        respond_with(self.query, [{"id": "p1"}], [{"id": "a1"}])

        animais.delete_animal(self.client, "a1")

        tables = [c[0][0] for c in self.client.table.call_args_list]
        self.assertEqual(tables, ["pesagens", "animais"])
        self.query.eq.assert_any_call("animal_id", "a1")

    def test_delete_missing_animal(self):
        respond_with(self.query, [], [])
        with self.assertRaises(NotFoundError):
            animais.delete_animal(self.client, "a404")

    def test_transfer_animal_checks_destination_lot(self):
        respond_with(self.query, [])
        with self.assertRaises(NotFoundError):
            animais.transfer_animal(self.client, "a1", "l404")
        self.query.update.assert_not_called()

    def test_transfer_animal(self):
        respond_with(self.query, [{"id": "l2", "quantidade_total": 10}], [{"id": "a1", "lote_id": "l2"}])
        result = animais.transfer_animal(self.client, "a1", "l2")
        self.query.update.assert_called_once_with({"lote_id": "l2"})
        self.assertEqual(result["lote_id"], "l2")

    def test_animal_statistics_counts_active_only(self):
        respond_with(self.query, [
            {"sexo": "Macho", "peso_atual": 400.0, "status": "Ativo"},
            {"sexo": "Fêmea", "peso_atual": 350.0, "status": "Ativo"},
            {"sexo": "Macho", "peso_atual": None, "status": "Ativo"},
            {"sexo": "Macho", "peso_atual": 500.0, "status": "Vendido"},
        ])

        stats = animais.animal_statistics(self.client)

        self.assertEqual(stats.total_animais, 4)
        self.assertEqual(stats.total_ativos, 3)
        self.assertEqual(stats.machos, 2)
        self.assertEqual(stats.femeas, 1)
        self.assertEqual(stats.peso_medio, 375.0)

    def test_animal_statistics_empty(self):
        self.assertEqual(animais.animal_statistics(self.client).total_animais, 0)

    def test_requires_authenticated_user(self):
        client, query = make_supabase_client(user_id=None)
        with self.assertRaises(UnauthenticatedError):
            animais.list_animals(client)
        query.execute.assert_not_called()


if __name__ == '__main__':
    unittest.main()
