from kelontong.services.advisor_service import ANALYSIS_FAILURE, CHAT_FAILURE


def _run(cli_runner, *args):
    return cli_runner.invoke(args=["shop", *args])


def test_products_lists_default_catalog(cli_runner):
    result = _run(cli_runner, "products")
    assert result.exit_code == 0
    assert "Beras Premium 5kg" in result.output
    assert "Rp65.000" in result.output


def test_products_search(cli_runner):
    result = _run(cli_runner, "products", "--search", "kopi")
    assert "Kopi Kapal Api" in result.output
    assert "Beras" not in result.output

    result = _run(cli_runner, "products", "--search", "tidak ada")
    assert "No products found." in result.output


def test_sell_then_summary_and_history(cli_runner):
    result = _run(cli_runner, "sell", "1:2", "5:10")
    assert result.exit_code == 0, result.output
    assert "total Rp165.000" in result.output

    result = _run(cli_runner, "expense", "50000", "--note", "Listrik")
    assert result.exit_code == 0, result.output

    summary = _run(cli_runner, "summary").output
    assert "Rp165.000" in summary
    assert "Rp145.000" in summary
    assert "-Rp30.000" in summary

    history = _run(cli_runner, "history").output.splitlines()
    assert "Listrik" in history[0]
    assert "+ Rp165.000" in history[1]


def test_sell_rejects_oversell_and_bad_lines(cli_runner):
    result = _run(cli_runner, "sell", "6:9")
    assert result.exit_code == 1
    assert "Only 8 sachet of Kopi Kapal Api in stock" in result.output

    result = _run(cli_runner, "sell", "1:abc")
    assert result.exit_code == 1
    assert "Invalid line item: 1:abc" in result.output

    result = _run(cli_runner, "sell", "404")
    assert result.exit_code == 1
    assert "not found" in result.output

    assert "Belum ada transaksi" in _run(cli_runner, "history").output


def test_inventory_commands(cli_runner):
    result = _run(cli_runner, "add-product", "--name", "Teh Celup", "--price", "6000", "--stock", "24")
    assert result.exit_code == 0, result.output
    assert "PASS Created product Teh Celup" in result.output

    assert _run(cli_runner, "update-product", "7", "--price", "23000").exit_code == 0
    assert "Rp23.000" in _run(cli_runner, "products", "--search", "sabun").output

    result = _run(cli_runner, "restock", "6", "40")
    assert "stock now 48 sachet" in result.output
    assert "PASS No low-stock products" in _run(cli_runner, "low-stock").output

    assert "PASS Deleted product 3" in _run(cli_runner, "delete-product", "3").output
    assert "WARN" in _run(cli_runner, "delete-product", "3").output


def test_add_product_validation_error(cli_runner):
    result = _run(cli_runner, "add-product", "--name", "Roti", "--price", "12.5")
    assert result.exit_code == 1
    assert "price must be an integer" in result.output


def test_low_stock_flags_critical(cli_runner):
    _run(cli_runner, "sell", "6:5")
    result = _run(cli_runner, "low-stock")
    assert "CRIT Kopi Kapal Api" in result.output


def test_reset_restores_defaults(cli_runner):
    _run(cli_runner, "delete-product", "1")
    _run(cli_runner, "sell", "2:1")

    result = _run(cli_runner, "reset", "--yes")
    assert "PASS Restored 7 default products" in result.output
    assert "Belum ada transaksi" in _run(cli_runner, "history").output


def test_advisor_without_key_prints_fallback(app, cli_runner, monkeypatch):
    monkeypatch.setitem(app.config, "GEMINI_API_KEY", None)

    assert ANALYSIS_FAILURE in _run(cli_runner, "advise").output
    assert CHAT_FAILURE in _run(cli_runner, "ask", "Apa itu HPP?").output
