# bovinsights/core/charts.py
import io
from typing import Any, Dict, List, Union

import matplotlib
matplotlib.use("Agg")  # sem display no servidor
import matplotlib.pyplot as plt
import matplotlib.ticker as mticker
import pandas as pd

from bovinsights.core.models import category_label
from bovinsights.utils.formatting import format_brl

# Configurações globais para os gráficos
plt.style.use('seaborn-v0_8-darkgrid')
plt.rcParams['font.family'] = 'sans-serif'
plt.rcParams['font.size'] = 10
plt.rcParams['axes.labelsize'] = 12
plt.rcParams['axes.titlesize'] = 14
plt.rcParams['xtick.labelsize'] = 10
plt.rcParams['ytick.labelsize'] = 10
plt.rcParams['legend.fontsize'] = 10

COLORS = {
    'Peso': '#2e7d32',
    'GMD': '#f9a825',
    'Fatias_Variadas': ['#1f77b4', '#ff7f0e', '#2ca02c', '#d62728', '#9467bd', '#8c564b', '#e377c2'],
}


def _to_png(fig) -> io.BytesIO:
    buf = io.BytesIO()
    fig.savefig(buf, format='png', dpi=150)
    buf.seek(0)
    plt.close(fig)
    return buf


def generate_weight_evolution_chart(pesagens: List[Dict[str, Any]],
                                    titulo: str = 'Evolução de Peso') -> Union[io.BytesIO, None]:
    """Gera o gráfico de peso ao longo do tempo, com o GMD de cada intervalo como rótulo."""
    df = pd.DataFrame(pesagens, columns=['data_pesagem', 'peso', 'gmd'])
    if df.empty:
        return None

    df['data_pesagem'] = pd.to_datetime(df['data_pesagem'].astype(str).str[:10])
    df = df.sort_values('data_pesagem')

    fig, ax = plt.subplots(figsize=(12, 7))
    ax.plot(df['data_pesagem'], df['peso'], marker='o', linewidth=2, color=COLORS['Peso'], label='Peso (kg)')

    for _, row in df.iterrows():
        if pd.notna(row['gmd']):
            ax.annotate(f"{row['gmd']:.3f} kg/dia".replace('.', ','),
                        (row['data_pesagem'], row['peso']),
                        textcoords='offset points', xytext=(0, 10),
                        ha='center', fontsize=8, color=COLORS['GMD'])

    ax.set_title(titulo, fontsize=16, fontweight='bold')
    ax.set_ylabel('Peso (kg)')
    ax.set_xlabel('Data da pesagem')
    ax.grid(axis='y', linestyle='--', alpha=0.7)
    ax.yaxis.set_major_formatter(mticker.FuncFormatter(lambda v, _: f"{v:.0f} kg"))
    fig.autofmt_xdate(rotation=45)
    ax.legend()
    fig.tight_layout()
    return _to_png(fig)


def generate_expense_category_chart(total_por_categoria: Dict[str, float]) -> Union[io.BytesIO, None]:
    """Gera o gráfico de barras do total gasto por categoria (só categorias com gasto)."""
    serie = pd.Series(total_por_categoria, dtype=float)
    serie = serie[serie > 0].sort_values(ascending=False)
    if serie.empty:
        return None

    labels = [category_label(categoria) for categoria in serie.index]
    fig, ax = plt.subplots(figsize=(12, 7))
    bars = ax.bar(labels, serie.values, color=COLORS['Fatias_Variadas'][:len(serie)])

    ax.set_title('Despesas por Categoria', fontsize=16, fontweight='bold')
    ax.set_ylabel('Valor (R$)')
    ax.set_xlabel('Categoria')
    ax.grid(axis='y', linestyle='--', alpha=0.7)
    ax.bar_label(bars, labels=[format_brl(v) for v in serie.values], fontsize=8, padding=3)
    ax.yaxis.set_major_formatter(mticker.FuncFormatter(lambda v, _: format_brl(v)))
    plt.setp(ax.get_xticklabels(), rotation=45, ha='right')
    fig.tight_layout()
    return _to_png(fig)
