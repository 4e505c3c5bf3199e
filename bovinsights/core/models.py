# bovinsights/core/models.py
"""
Resumos tipados dos relatórios e estatísticas.

Os registros (lotes, pesagens, despesas, vendas, tarefas) continuam sendo
dicionários vindos do Supabase; só os resultados agregados ganham classes.
"""
from dataclasses import asdict, dataclass, field, fields
from typing import Any, Dict, List, Optional

CATEGORIAS_DESPESA = {
    "suplementacao": "Suplementação",
    "sal_mineral": "Sal Mineral",
    "medicamentos": "Medicamentos",
    "mao_de_obra": "Mão de Obra",
    "eletricidade": "Eletricidade",
    "manutencao": "Manutenção",
    "outros": "Outros",
}


def category_label(categoria: str) -> str:
    return CATEGORIAS_DESPESA.get(categoria, CATEGORIAS_DESPESA["outros"])


class _FromRow:
    @classmethod
    def from_row(cls, row: Dict[str, Any]):
        """Monta a instância ignorando colunas extras da função remota."""
        names = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in row.items() if k in names})

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


# --- Relatórios (funções remotas) ---

@dataclass
class RebanhoAtual(_FromRow):
    """Foto do rebanho atual."""
    fazenda_nome: Optional[str] = None
    quantidade_total_animais: int = 0
    peso_medio_atual: Optional[float] = None
    peso_total_rebanho: Optional[float] = None
    data_ultima_pesagem: Optional[str] = None


@dataclass
class PesagemDesempenho(_FromRow):
    """Desempenho de uma pesagem no período."""
    animal_id: str
    brinco: str
    data_pesagem: str
    peso_atual: float
    dias_entre_pesagens: int = 0
    lote_nome: Optional[str] = None
    peso_anterior: Optional[float] = None
    ganho_no_periodo: Optional[float] = None
    gmd: Optional[float] = None


@dataclass
class DesempenhoLote(_FromRow):
    """Desempenho consolidado de um lote."""
    lote_id: str
    lote_nome: str
    quantidade_animais: int = 0
    peso_medio_inicial: Optional[float] = None
    peso_medio_atual: Optional[float] = None
    ganho_medio_total: Optional[float] = None
    gmd_medio: Optional[float] = None
    dias_no_sistema: Optional[int] = None


# --- Estatísticas calculadas localmente ---

@dataclass
class EstatisticasFinanceiras(_FromRow):
    total_gasto: float = 0.0
    despesas_mes_atual: float = 0.0
    custo_medio_por_lote: float = 0.0
    maior_categoria: Optional[Dict[str, Any]] = None
    total_por_categoria: Dict[str, float] = field(default_factory=dict)


@dataclass
class EstatisticasVendas(_FromRow):
    total_vendas: int = 0
    valor_total_vendido: float = 0.0
    lucro_total: float = 0.0
    margem_media: Optional[float] = None
    vendas_atingiram_objetivo: int = 0
    percentual_objetivo: int = 0
    maior_venda: Optional[Dict[str, Any]] = None


@dataclass
class EstatisticasPesagem(_FromRow):
    total_pesagens: int = 0
    peso_medio: float = 0.0
    maior_peso: float = 0.0
    menor_peso: float = 0.0
    ultima_pesagem: Optional[str] = None


@dataclass
class GmdAnimal(_FromRow):
    """GMD geral de um animal, da primeira à última pesagem."""
    total_pesagens: int = 0
    ganho_total: Optional[float] = None
    periodo_dias: int = 0
    gmd: Optional[float] = None


@dataclass
class GastosMes(_FromRow):
    mes: str
    total: float = 0.0
    despesas: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class EstatisticasAnimais(_FromRow):
    """Contagens do rebanho individual; sexo e peso médio consideram só os ativos."""
    total_animais: int = 0
    total_ativos: int = 0
    machos: int = 0
    femeas: int = 0
    peso_medio: float = 0.0


@dataclass
class ResumoFinanceiroLote(_FromRow):
    lote_id: str
    lote_nome: Optional[str] = None
    investimento_inicial: float = 0.0
    custeios: float = 0.0
    total_investido: float = 0.0
    receita_vendas: float = 0.0
    valor_estoque_atual: Optional[float] = None
    lucro_ou_prejuizo: float = 0.0
    margem_percentual: Optional[float] = None
    total_animais: int = 0
    total_arrobas: float = 0.0
    custo_por_cabeca: Optional[float] = None
    custo_por_arroba: Optional[float] = None


@dataclass
class CustoCabecaMes(_FromRow):
    mes: str
    custo_total: float = 0.0
    custo_cabeca: Optional[float] = None
