import unittest

from supabase_mock import USER_ID, make_supabase_client, respond_with

from bovinsights.core.errors import NotFoundError, UnauthenticatedError, ValidationError
from bovinsights.services import lotes


class TestLotes(unittest.TestCase):
    def setUp(self):
        self.client, self.query = make_supabase_client()

    def test_list_lots_adds_stats(self):
        respond_with(self.query, [
            {"id": "l1", "nome": "Lote A", "quantidade_total": 45, "capacidade_maxima": 60, "peso_medio_animal": 312.44},
            {"id": "l2", "nome": "Lote B", "quantidade_total": 0, "capacidade_maxima": 0},
        ])

        result = lotes.list_lots(self.client)

        self.client.table.assert_called_with("lotes")
        self.query.eq.assert_any_call("usuario_id", USER_ID)
        self.query.order.assert_called_with("created_at", desc=True)
        self.assertEqual(result[0]["ocupacao_percentual"], 75)
        self.assertEqual(result[0]["total_animais"], 45)
        self.assertEqual(result[0]["peso_medio"], 312.4)
        self.assertEqual(result[1]["ocupacao_percentual"], 0)
        self.assertEqual(result[1]["peso_medio"], 0)

    def test_search_lots_rejects_unknown_status(self):
        with self.assertRaises(ValidationError):
            lotes.search_lots(self.client, status="perdido")
        self.query.execute.assert_not_called()

    def test_search_lots_by_name(self):
        lotes.search_lots(self.client, query="Engorda", status="ativo")
        self.query.ilike.assert_called_once_with("nome", "%Engorda%")
        self.query.eq.assert_any_call("status", "ativo")

    def test_create_lot_computes_entry_costs(self):
        respond_with(self.query, [{"id": "l1", "nome": "Lote A", "quantidade_total": 20, "capacidade_maxima": 40}])

        lotes.create_lot(self.client, {
            "nome": "  Lote A ",
            "capacidade_maxima": 40,
            "quantidade_total": 20,
            "peso_total_entrada": 6000,
            "preco_arroba_compra": 250,
            "frete": 1000,
            "campo_estranho": "ignorado",
        })

        inserted = self.query.insert.call_args[0][0]
        self.assertEqual(inserted["nome"], "Lote A")
        self.assertEqual(inserted["status"], "ativo")
        self.assertEqual(inserted["usuario_id"], USER_ID)
        self.assertEqual(inserted["valor_animais"], 50000.0)
        self.assertEqual(inserted["custo_total"], 51000.0)
        self.assertEqual(inserted["custo_por_cabeca"], 2550.0)
        self.assertEqual(inserted["peso_medio_animal"], 300.0)
        self.assertNotIn("campo_estranho", inserted)

    def test_create_lot_validation_happens_before_write(self):
        with self.assertRaises(ValidationError):
            lotes.create_lot(self.client, {"nome": "", "capacidade_maxima": 10})
        self.query.insert.assert_not_called()

    def test_update_lot_recomputes_costs_with_stored_values(self):
        current = {"id": "l1", "peso_total_entrada": 6000, "preco_arroba_compra": 250, "quantidade_total": 20}
        respond_with(self.query, [current], [{**current, "preco_arroba_compra": 300}])

        lotes.update_lot(self.client, "l1", {"preco_arroba_compra": 300})

        changes = self.query.update.call_args[0][0]
        self.assertEqual(changes["custo_total"], 60000.0)
        self.assertEqual(changes["custo_por_cabeca"], 3000.0)

    def test_update_lot_costs_keeps_weighed_average(self):
        current = {"id": "l1", "peso_total_entrada": 3000, "preco_arroba_compra": 300,
                   "quantidade_total": 10, "peso_medio_animal": 420.0}
        respond_with(self.query, [current], [{**current, "frete": 500}])

        result = lotes.update_lot(self.client, "l1", {"frete": 500})

        changes = self.query.update.call_args[0][0]
        self.assertEqual(changes["custo_total"], 30500.0)
        self.assertNotIn("peso_medio_animal", changes)
        self.assertEqual(result["peso_medio"], 420.0)

    def test_update_lot_entry_weight_recomputes_average(self):
        current = {"id": "l1", "peso_total_entrada": 3000, "preco_arroba_compra": 300,
                   "quantidade_total": 10, "peso_medio_animal": 420.0}
        respond_with(self.query, [current], [{**current, "peso_total_entrada": 3600}])

        lotes.update_lot(self.client, "l1", {"peso_total_entrada": 3600})

        changes = self.query.update.call_args[0][0]
        self.assertEqual(changes["peso_medio_animal"], 360.0)

    def test_update_missing_lot(self):
        respond_with(self.query, [])
        with self.assertRaises(NotFoundError):
            lotes.update_lot(self.client, "nao-existe", {"nome": "X"})

    def test_deactivate_lot_is_soft_delete(self):
        respond_with(self.query, [{"id": "l1", "status": "inativo"}])

        result = lotes.deactivate_lot(self.client, "l1")

        self.query.update.assert_called_once_with({"status": "inativo"})
        self.query.delete.assert_not_called()
        self.assertEqual(result["status"], "inativo")

    def test_requires_authenticated_user(self):
        client, query = make_supabase_client(user_id=None)
        with self.assertRaises(UnauthenticatedError):
            lotes.list_lots(client)
        query.execute.assert_not_called()


if __name__ == '__main__':
    unittest.main()
