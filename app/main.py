import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from datetime import datetime, timezone

import streamlit as st
import pandas as pd
import plotly.express as px
import plotly.graph_objects as go

from finflow.aggregates import top_categories
from finflow.config import get_settings
from finflow.domain import CADENCES, FREQUENCIES, INCOME, EXPENSE, TRANSFER, default_state
from finflow.goals import MOVE_IN, MOVE_OUT
from finflow.leveling import LEVEL_THRESHOLD
from finflow.log import configure_logging, get_logger
from finflow.persistence import load_state, save_state
from finflow.services import LedgerStore, default_dashboard
from finflow.transfers import sibling_leg
from finflow.views import account_label, filter_transactions

settings = get_settings()
configure_logging(settings.log_level, settings.log_json)
logger = get_logger("app")

st.set_page_config(page_title="Finance Flow", layout="wide")

KIND_LABELS = {INCOME: "Receita", EXPENSE: "Despesa", TRANSFER: "Transferência"}
CADENCE_LABELS = {"daily": "por dia", "monthly": "por mês", "yearly": "por ano"}


def money(value: float) -> str:
    return f"{value:,.2f} {settings.currency}"


def initial_state():
    fallback = default_state(datetime.now(timezone.utc).isoformat())
    seed = load_state(settings.seed_path, fallback).get_or_else(fallback)
    loaded = load_state(settings.data_path, seed)
    if loaded.is_left():
        logger.error("state_load_failed", path=settings.data_path, error=loaded.get_error()["message"])
        st.error(f"Could not read {settings.data_path}: {loaded.get_error()['message']}")
    return loaded.get_or_else(seed)


def report(result, success: str) -> None:
    if result.is_right():
        st.success(success)
        st.rerun()
    else:
        st.error(result.get_error()["message"])


if "store" not in st.session_state:
    st.session_state.store = LedgerStore(
        initial_state(),
        on_commit=lambda state: save_state(settings.data_path, state),
    )
if "authenticated" not in st.session_state:
    st.session_state.authenticated = False

store: LedgerStore = st.session_state.store

if not st.session_state.authenticated:
    st.title("Finance Flow")
    st.caption("Controle Inteligente de Gastos")
    with st.form("login"):
        pin = st.text_input("PIN de Acesso", type="password", max_chars=4)
        if st.form_submit_button("Entrar"):
            if pin == settings.access_pin:
                st.session_state.authenticated = True
                st.rerun()
            else:
                st.error("PIN incorreto!")
    st.stop()

state = store.state
snapshot = default_dashboard(settings.history_days).snapshot(state)["result"]
balances = snapshot["balances"]
level = snapshot["level"]
account_names = {a.id: a.name for a in state.accounts}
regular_accounts = [a for a in state.accounts if not a.is_goal_account]

st.sidebar.markdown(f"### 🏅 {level.name.value}")
st.sidebar.progress(level.progress / 100)
st.sidebar.caption(f"{state.xp} XP · {LEVEL_THRESHOLD} XP por nível")
if st.sidebar.button("🚪 Sair"):
    st.session_state.authenticated = False
    st.rerun()

menu = st.sidebar.radio("Menu", ["🏠 Overview", "📊 Analytics", "🎯 Goals", "⚙️ Manage"])

if menu == "🏠 Overview":
    totals = snapshot["totals"]
    k1, k2, k3 = st.columns(3)
    with k1:
        st.metric("Receitas", money(totals.income))
    with k2:
        st.metric("Despesas", money(totals.expenses))
    with k3:
        st.metric("Saldo", money(totals.net))

    if state.accounts:
        fig_bal = px.bar(
            x=[a.name for a in state.accounts],
            y=[balances[a.id] for a in state.accounts],
            labels={"x": "Conta", "y": f"Saldo ({settings.currency})"},
            title="Saldos por conta",
            template="plotly_dark",
        )
        st.plotly_chart(fig_bal, use_container_width=True)

    add_col, transfer_col = st.columns(2)
    with add_col:
        st.subheader("➕ Novo lançamento")
        with st.form("add_tx", clear_on_submit=True):
            description = st.text_input("Descrição", key="add_description")
            amount = st.number_input("Valor", min_value=0.0, step=10.0, format="%.2f", key="add_amount")
            kind = st.selectbox("Tipo", [EXPENSE, INCOME], format_func=KIND_LABELS.get)
            category = st.selectbox("Categoria", list(state.categories), key="add_category")
            account_id = st.selectbox("Conta", list(account_names), format_func=account_names.get)
            frequency = st.selectbox("Recorrência", FREQUENCIES)
            if st.form_submit_button("Adicionar"):
                report(
                    store.add_transaction(
                        description, amount, kind, category or "", account_id,
                        is_recurring=frequency != "none", frequency=frequency,
                    ),
                    "Lançamento adicionado!",
                )

    with transfer_col:
        st.subheader("🔁 Transferir")
        with st.form("transfer", clear_on_submit=True):
            from_id = st.selectbox(
                "Origem", list(account_names),
                format_func=lambda i: f"{account_names[i]} ({money(balances.get(i, 0))})",
            )
            to_id = st.selectbox("Destino", list(account_names), format_func=account_names.get)
            amount = st.number_input("Valor", min_value=0.0, step=10.0, format="%.2f", key="transfer_amount")
            if st.form_submit_button("Transferir"):
                report(store.create_transfer(from_id, to_id, amount), "Transferência concluída!")

    st.subheader("🧾 Transações")
    f1, f2, f3, f4 = st.columns(4)
    with f1:
        search = st.text_input("Filtrar...")
    with f2:
        category_filter = st.selectbox("Categoria", ["all", *state.categories], key="flt_cat")
    with f3:
        account_filter = st.selectbox(
            "Conta", ["all", *account_names], key="flt_acc",
            format_func=lambda i: "all" if i == "all" else account_names[i],
        )
    with f4:
        kind_filter = st.selectbox("Tipo", ["all", INCOME, EXPENSE, TRANSFER], key="flt_kind")

    listing = filter_transactions(
        state.transactions,
        search=search,
        category=None if category_filter == "all" else category_filter,
        account_id=None if account_filter == "all" else account_filter,
        kind=None if kind_filter == "all" else kind_filter,
    )
    if listing:
        rows = []
        for t in listing:
            name, removed = account_label(state.accounts, t)
            rows.append({
                "id": t.id,
                "Data": f"{t.date} {t.time}",
                "Descrição": t.description + (" (editado)" if t.is_edited else ""),
                "Categoria": t.category if t.category in state.categories or t.kind == TRANSFER
                else f"{t.category} (Removida)",
                "Conta": f"{name} (Deletada)" if removed else name,
                "Tipo": KIND_LABELS.get(t.kind, t.kind),
                "Valor": t.amount,
            })
        df = pd.DataFrame(rows)
        st.dataframe(df.drop(columns=["id"]), use_container_width=True, hide_index=True)

        by_id = {t.id: t for t in listing}
        chosen = st.selectbox(
            "Selecionar transação", list(by_id),
            format_func=lambda i: f"{by_id[i].date} {by_id[i].time} · {by_id[i].description}",
        )
        tx = by_id[chosen]
        if tx.is_transfer_leg:
            sibling = sibling_leg(state.transactions, tx)
            if sibling.is_some():
                other_name, _ = account_label(state.accounts, sibling.get_or_else(None))
                st.caption(f"Perna vinculada em {other_name}. Transferências são removidas junto com a perna correspondente.")
            else:
                st.caption("Transferências são removidas junto com a perna correspondente.")
        else:
            with st.form("edit_tx"):
                new_description = st.text_input("Descrição", value=tx.description, key=f"edit_description_{tx.id}")
                new_amount = st.number_input("Valor", min_value=0.0, value=float(tx.amount), format="%.2f", key=f"edit_amount_{tx.id}")
                kinds = [EXPENSE, INCOME]
                new_kind = st.selectbox(
                    "Tipo", kinds, index=kinds.index(tx.kind), format_func=KIND_LABELS.get, key=f"edit_kind_{tx.id}",
                )
                category_options = list(state.categories)
                if tx.category not in category_options:
                    category_options.append(tx.category)
                new_category = st.selectbox("Categoria", category_options, index=category_options.index(tx.category), key=f"edit_category_{tx.id}")
                account_options = list(account_names)
                if tx.account_id not in account_options:
                    account_options.append(tx.account_id)
                new_account = st.selectbox(
                    "Conta", account_options, index=account_options.index(tx.account_id), key=f"edit_account_{tx.id}",
                    format_func=lambda i: account_names.get(i, f"{tx.account_name} (Deletada)"),
                )
                current_frequency = tx.frequency if tx.is_recurring and tx.frequency in FREQUENCIES else "none"
                new_frequency = st.selectbox(
                    "Recorrência", FREQUENCIES, index=FREQUENCIES.index(current_frequency), key=f"edit_frequency_{tx.id}",
                )
                if st.form_submit_button("Salvar"):
                    report(
                        store.edit_transaction(
                            tx.id, description=new_description, amount=new_amount, kind=new_kind,
                            category=new_category, account_id=new_account,
                            is_recurring=new_frequency != "none", frequency=new_frequency,
                        ),
                        "Transação atualizada!",
                    )
        if st.button("🗑️ Remover permanentemente"):
            report(store.delete_transaction(tx.id), "Transação removida.")
    else:
        st.info("Nenhuma transação encontrada.")

elif menu == "📊 Analytics":
    st.title("📊 Analytics")
    daily = snapshot["daily"]
    if daily:
        days = [d.date for d in daily]
        fig_ts = go.Figure()
        fig_ts.add_trace(go.Scatter(x=days, y=[d.income for d in daily], mode="lines+markers", name="Receitas", fill="tozeroy"))
        fig_ts.add_trace(go.Scatter(x=days, y=[d.expense for d in daily], mode="lines+markers", name="Despesas", fill="tozeroy"))
        fig_ts.update_layout(template="plotly_dark", margin=dict(t=30, b=10, l=10, r=10))
        st.plotly_chart(fig_ts, use_container_width=True)
    else:
        st.info("Sem movimentações para exibir.")

    pie_cols = st.columns(2)
    for col, key, title in (
        (pie_cols[0], "expense_by_category", "Despesas por categoria"),
        (pie_cols[1], "income_by_category", "Receitas por categoria"),
    ):
        with col:
            data = snapshot[key]
            if data:
                df_cat = pd.DataFrame({"Categoria": list(data), "Total": list(data.values())})
                st.plotly_chart(px.pie(df_cat, values="Total", names="Categoria", title=title), use_container_width=True)
            else:
                st.caption(f"{title}: sem dados")

    top = list(top_categories(snapshot["expense_by_category"], 3))
    if top:
        st.subheader("🔥 Maiores despesas")
        for col, (name, total) in zip(st.columns(len(top)), top):
            col.metric(name, money(total))

    orphans = snapshot["orphans"]
    if not orphans.is_clean:
        st.warning(
            "Referências removidas: "
            + ", ".join([*orphans.categories, *(f"conta {i}" for i in orphans.account_ids)])
        )

elif menu == "🎯 Goals":
    st.title("🎯 Metas")
    for status in snapshot["goals"]:
        goal = status.goal
        with st.container(border=True):
            st.subheader(goal.name)
            st.progress(max(status.progress, 0) / 100)
            st.caption(f"{money(status.balance)} de {money(goal.target)}")

            cadence = st.radio(
                "Plano", CADENCES, horizontal=True, key=f"cad_{goal.id}",
                index=CADENCES.index(goal.effective_cadence),
            )
            if cadence != goal.effective_cadence:
                report(store.set_goal_cadence(goal.id, cadence), "Plano atualizado.")
            if status.plan.is_some():
                plan = status.plan.get_or_else(None)
                st.info(f"Poupe {money(plan.amount)} {CADENCE_LABELS[plan.cadence]}")

            counter = st.selectbox(
                "Conta para aporte/resgate", [a.id for a in regular_accounts], key=f"ctr_{goal.id}",
                format_func=lambda i: f"{account_names[i]} ({money(balances.get(i, 0))})",
            )
            value = st.number_input("Valor", min_value=0.0, step=10.0, key=f"val_{goal.id}")
            b1, b2, b3 = st.columns(3)
            if b1.button("Aportar", key=f"in_{goal.id}"):
                report(store.move_goal_value(goal.id, MOVE_IN, value, counter), "Aporte registrado!")
            if b2.button("Resgatar", key=f"out_{goal.id}"):
                report(store.move_goal_value(goal.id, MOVE_OUT, value, counter), "Resgate registrado!")
            if b3.button("🗑️ Excluir", key=f"del_{goal.id}"):
                report(store.delete_goal(goal.id), "Meta excluída.")

            with st.expander("✏️ Editar"):
                with st.form(f"edit_goal_{goal.id}"):
                    name = st.text_input("Nome", value=goal.name, key=f"name_{goal.id}")
                    target = st.number_input("Alvo", min_value=0.0, value=float(goal.target), key=f"target_{goal.id}")
                    deadline = st.text_input("Prazo (AAAA-MM-DD)", value=goal.deadline or "", key=f"deadline_{goal.id}")
                    if st.form_submit_button("Salvar"):
                        report(store.edit_goal(goal.id, name, target, deadline or None), "Meta atualizada!")

    st.subheader("＋ Novo Sonho")
    with st.form("new_goal", clear_on_submit=True):
        name = st.text_input("Nome")
        target = st.number_input("Alvo", min_value=0.0, step=100.0)
        deadline = st.date_input("Prazo", value=None)
        if st.form_submit_button("Criar meta"):
            report(
                store.create_goal(name, target, deadline.isoformat() if deadline else None),
                "Meta criada!",
            )

elif menu == "⚙️ Manage":
    st.title("⚙️ Gerenciar")
    acc_col, cat_col = st.columns(2)
    with acc_col:
        st.header("💳 Contas")
        for acc in state.accounts:
            c1, c2, c3 = st.columns([3, 2, 1])
            new_name = c1.text_input("Nome", value=acc.name, key=f"acc_{acc.id}", label_visibility="collapsed")
            if new_name != acc.name:
                report(store.rename_account(acc.id, new_name), "Conta renomeada.")
            c2.caption(money(balances.get(acc.id, 0)) + (" · meta" if acc.is_goal_account else ""))
            if c3.button("🗑️", key=f"del_acc_{acc.id}"):
                report(store.delete_account(acc.id), "Conta removida.")
        with st.form("new_account", clear_on_submit=True):
            name = st.text_input("Nova conta")
            if st.form_submit_button("+"):
                report(store.add_account(name), "Conta criada.")

    with cat_col:
        st.header("🗂 Categorias")
        for cat in state.categories:
            c1, c2 = st.columns([4, 1])
            new_name = c1.text_input("Categoria", value=cat, key=f"cat_{cat}", label_visibility="collapsed")
            if new_name != cat:
                report(store.rename_category(cat, new_name), "Categoria renomeada.")
            if c2.button("✕", key=f"del_cat_{cat}"):
                report(store.delete_category(cat), "Categoria removida.")
        with st.form("new_category", clear_on_submit=True):
            name = st.text_input("Nova categoria")
            if st.form_submit_button("+"):
                report(store.add_category(name), "Categoria criada.")

    st.header("💾 Backup")
    st.download_button(
        "Exportar Dados",
        store.export_document(),
        file_name="finance_backup.json",
        mime="application/json",
    )
    uploaded = st.file_uploader("Importar Backup", type=["json"])
    if uploaded is not None and st.button("Importar"):
        result = store.import_document(uploaded.getvalue())
        report(result, "Dados importados com sucesso!")
