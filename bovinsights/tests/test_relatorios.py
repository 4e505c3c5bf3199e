import unittest
from unittest.mock import MagicMock

from supabase_mock import USER_ID, make_supabase_client

from bovinsights.core.errors import UnauthenticatedError, UpstreamError
from bovinsights.core.models import DesempenhoLote, PesagemDesempenho, RebanhoAtual
from bovinsights.services import relatorios


class TestRelatorios(unittest.TestCase):
    def setUp(self):
        self.client, _ = make_supabase_client()
        self.rpc_call = MagicMock()
        self.client.rpc.return_value = self.rpc_call

    def test_current_herd_report(self):
        self.rpc_call.execute.return_value = MagicMock(data=[{
            "fazenda_nome": "Fazenda Boa Vista",
            "quantidade_total_animais": 120,
            "peso_medio_atual": 410.5,
            "peso_total_rebanho": 49260.0,
            "data_ultima_pesagem": "2025-07-01",
            "coluna_extra": "ignorada",
        }])

        result = relatorios.get_current_herd_report(self.client)

        self.client.rpc.assert_called_once_with("get_relatorio_rebanho_atual", {"user_id_param": USER_ID})
        self.assertEqual(result, [RebanhoAtual("Fazenda Boa Vista", 120, 410.5, 49260.0, "2025-07-01")])

    def test_weighing_performance_passes_date_range(self):
        self.rpc_call.execute.return_value = MagicMock(data=[{
            "animal_id": "a1", "brinco": "BR-001", "data_pesagem": "2025-06-01", "peso_atual": 420.0,
            "dias_entre_pesagens": 30, "peso_anterior": 405.0, "ganho_no_periodo": 15.0, "gmd": 0.5,
        }])

        result = relatorios.get_weighing_performance_report(self.client, "2025-05-01", "2025-06-30")

        self.client.rpc.assert_called_once_with("get_relatorio_pesagens_desempenho", {
            "user_id_param": USER_ID,
            "data_inicio_param": "2025-05-01",
            "data_fim_param": "2025-06-30",
        })
        self.assertIsInstance(result[0], PesagemDesempenho)
        self.assertEqual(result[0].gmd, 0.5)
        self.assertIsNone(result[0].lote_nome)

    def test_lot_performance_null_result_is_empty(self):
        self.rpc_call.execute.return_value = MagicMock(data=None)
        self.assertEqual(relatorios.get_lot_performance_report(self.client), [])

    def test_lot_performance_rows(self):
        self.rpc_call.execute.return_value = MagicMock(data=[{"lote_id": "l1", "lote_nome": "Engorda 1", "gmd_medio": 0.82}])
        result = relatorios.get_lot_performance_report(self.client)
        self.assertEqual(result, [DesempenhoLote(lote_id="l1", lote_nome="Engorda 1", gmd_medio=0.82)])

    def test_remote_failure_uses_domain_message(self):
        self.rpc_call.execute.side_effect = Exception("relation does not exist")
        with self.assertRaises(UpstreamError) as ctx:
            relatorios.get_current_herd_report(self.client)
        self.assertEqual(ctx.exception.message, "Não foi possível carregar os dados do rebanho")

    def test_requires_user(self):
        client, _ = make_supabase_client(user_id=None)
        with self.assertRaises(UnauthenticatedError):
            relatorios.get_lot_performance_report(client)
        client.rpc.assert_not_called()


if __name__ == '__main__':
    unittest.main()
