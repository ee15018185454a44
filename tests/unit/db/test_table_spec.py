from formdata_import.db.table_specs import FORM_DATA, TABLE_SPECS


def test_table_specs_are_keyed_by_table_name():
    """No syntax errors in `TABLE_SPECS`."""
    for name, spec in TABLE_SPECS.items():
        assert name == spec.table_name
        assert isinstance(spec.columns, tuple), (name, spec.columns)
        assert spec.id_col in spec.columns
        assert set(spec.permanent_cols) <= set(spec.columns)


def test_form_data_columns_keep_the_csv_contract():
    assert FORM_DATA.columns == (
        "id", "first_name", "last_name", "gender", "email",
        "adress1", "adress2", "city", "state", "zip_code", "feedback",
    )
    assert FORM_DATA.value_columns[0] == "first_name"
    assert "id" not in FORM_DATA.value_columns
    assert len(FORM_DATA.value_columns) == 10


def test_every_entity_type_targets_a_known_table():
    from formdata_import.parsing.registry import ENTITY_TYPES, get_entity_spec

    for code, (table_name, _) in ENTITY_TYPES.items():
        assert table_name in TABLE_SPECS
        assert get_entity_spec(code).table is TABLE_SPECS[table_name]
