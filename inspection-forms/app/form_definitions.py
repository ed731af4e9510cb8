"""Static form definitions for the Inspection Forms tool.

NFPA 25 inspection, testing and maintenance checklists. Each form is a
``FormSchema`` plus the ordered progress milestones that say when the
inspector has done "enough" of each part. Milestones are declared by hand
per form on purpose; they do not follow the ``required`` flags.

Part of the FireSafe ITM tool suite.
"""

from __future__ import annotations

from app.progress import (
    Milestone,
    all_of,
    any_field_filled,
    fields_filled,
    frequency_selected,
    section_completed,
    signatures_captured,
)
from app.registry import FormDefinition, SchemaRegistry
from app.schema import (
    BOOLEAN_CHECKBOX,
    DATE_INPUT,
    MULTI_LINE_TEXT,
    NUMERIC_INPUT,
    RADIO_TRISTATE,
    ROLE_CLIENT,
    ROLE_INSPECTOR,
    SECTION_HEADER,
    SIGNATURE,
    SINGLE_SELECT,
    TEXT_INPUT,
    FieldOption,
    FormField,
    FormSchema,
    FormSection,
    IncludeField,
)

# ---------------------------------------------------------------------------
# Frequencies
# ---------------------------------------------------------------------------

FREQUENCIES: tuple[FieldOption, ...] = (
    FieldOption("diaria", "Diária"),
    FieldOption("semanal", "Semanal"),
    FieldOption("mensal", "Mensal"),
    FieldOption("trimestral", "Trimestral"),
    FieldOption("semestral", "Semestral"),
    FieldOption("anual", "Anual"),
    FieldOption("5anos", "5 Anos"),
    FieldOption("testes", "Testes"),
)

FREQUENCY_VALUES = frozenset(o.value for o in FREQUENCIES)

# Shortest to longest. A longer cadence repeats every shorter one.
CADENCE_ORDER = ("diaria", "semanal", "mensal", "trimestral", "semestral", "anual", "5anos")

FREQUENCY_DESCRIPTIONS = {
    "diaria": "Inspeções diárias básicas (aplicáveis durante clima frio)",
    "semanal": "Inclui inspeções diárias + verificações semanais de válvulas e sistemas",
    "mensal": "Inclui inspeções semanais + verificações mensais de equipamentos",
    "trimestral": "Inclui inspeções mensais + verificações trimestrais especializadas",
    "anual": "Inspeção completa incluindo testes anuais e verificações especializadas",
    "5anos": "Inspeção integral de 5 anos com todos os testes e verificações",
}


def cadence_and_longer(frequency: str) -> frozenset[str]:
    """*frequency* plus every longer cadence (``mensal`` -> mensal..5anos)."""
    index = CADENCE_ORDER.index(frequency)
    return frozenset(CADENCE_ORDER[index:])


def frequency_description(frequency: str) -> str:
    return FREQUENCY_DESCRIPTIONS.get(frequency, "Frequência personalizada")


# Tests run on their own schedule and as part of annual/5-year visits.
TEST_FREQUENCIES = frozenset({"testes", "anual", "5anos"})

# ---------------------------------------------------------------------------
# Field builders
# ---------------------------------------------------------------------------

TRISTATE_OPTIONS = (
    FieldOption("sim", "Sim"),
    FieldOption("nao", "Não"),
    FieldOption("na", "N/A"),
)


def _tristate(field_id: str, label: str, include: IncludeField | None = None) -> FormField:
    return FormField(field_id, RADIO_TRISTATE, label, options=TRISTATE_OPTIONS, include_field=include)


def _text(field_id: str, label: str, required: bool = False, placeholder: str = "") -> FormField:
    return FormField(field_id, TEXT_INPUT, label, required=required, placeholder=placeholder)


def _psi() -> IncludeField:
    return IncludeField("Valor (psi)", NUMERIC_INPUT, "psi")


def _temperature() -> IncludeField:
    return IncludeField("Temperatura (°F)", NUMERIC_INPUT, "°F")


def _general_fields(name_id: str, address_id: str, inspector_id: str, date_id: str) -> tuple[FormField, ...]:
    return (
        _text(name_id, "Nome da Propriedade", required=True, placeholder="Ex: Centro Empresarial ABC"),
        _text(address_id, "Endereço da Propriedade", required=True, placeholder="Endereço completo"),
        _text("propertyPhone", "Telefone", placeholder="(11) 99999-9999"),
        _text(inspector_id, "Inspetor", required=True, placeholder="Nome completo e credenciais"),
        _text("contractNumber", "Número do Contrato"),
        FormField(date_id, DATE_INPUT, "Data da Inspeção", required=True),
    )


def _frequency_field(options: tuple[FieldOption, ...]) -> FormField:
    return FormField("frequency", SINGLE_SELECT, "Frequência da Inspeção", required=True, options=options)


def _cadence_section(
    section_id: str,
    title: str,
    frequency: str,
    fields: tuple[FormField, ...],
    description: str = "",
) -> FormSection:
    return FormSection(
        section_id,
        title,
        fields,
        required_frequencies=cadence_and_longer(frequency),
        conditional_display=True,
        description=description,
    )


def _observations_section() -> FormSection:
    return FormSection("observations", "Deficiências e Ações Corretivas", (
        FormField("deficiencies", MULTI_LINE_TEXT, "Deficiências Encontradas"),
        FormField("correctiveActions", MULTI_LINE_TEXT, "Ações Corretivas Necessárias"),
        FormField("additionalNotes", MULTI_LINE_TEXT, "Observações Adicionais"),
    ))


def _signatures_section() -> FormSection:
    return FormSection("signatures", "Assinaturas", (
        FormField("inspectorSignature", SIGNATURE, "Assinatura do Inspetor", required=True, role=ROLE_INSPECTOR),
        FormField("clientSignature", SIGNATURE, "Assinatura do Cliente", required=True, role=ROLE_CLIENT),
    ))


# ---------------------------------------------------------------------------
# Wet pipe sprinkler system
# ---------------------------------------------------------------------------

WET_SPRINKLER_SCHEMA = FormSchema(
    form_id="wet-sprinkler",
    title="Sistema de Sprinklers de Tubo Molhado (Wet Pipe)",
    description="Inspeção, Teste e Manutenção conforme NFPA 25 - Versão Integral",
    version="1.0.0",
    frequencies=FREQUENCIES,
    estimated_time="15-20 min",
    sections=(
        FormSection("general", "Informações Gerais", _general_fields(
            "propertyName", "propertyAddress", "inspector", "date",
        ) + (_frequency_field(FREQUENCIES),)),
        _cadence_section("daily", "Inspeções Diárias", "diaria", (
            _tristate("daily_alarm_receipt", "Alarmes sendo recebidos adequadamente na estação de supervisão?"),
            _tristate("daily_water_flow_alarms", "Alarmes de fluxo de água sendo recebidos na estação de supervisão?"),
            _tristate("daily_supervisory_alarms", "Sinais de supervisão sendo recebidos na estação de supervisão?"),
        ), "Verificações diárias de alarmes e monitoramento"),
        _cadence_section("weekly", "Inspeções Semanais", "semanal", (
            FormField("weekly_section_header_backflow", SECTION_HEADER, "Fluxo de Retorno (Backflow)"),
            _tristate("weekly_isolation_valves",
                      "Válvulas de isolamento estão em posição aberta e travadas ou supervisionadas?"),
            _tristate("weekly_rpa_rpda",
                      "RPA e RPDA – válvula de alívio de detecção diferencial operando corretamente?"),
            FormField("weekly_section_header_pressure_regulator", SECTION_HEADER,
                      "Dispositivo Regulador de Pressão Mestre"),
            _tristate("weekly_downstream_pressures",
                      "As pressões a jusante (downstream) estão de acordo com os critérios de projeto?", _psi()),
            _tristate("weekly_supply_pressure",
                      "A pressão de abastecimento está de acordo com os critérios de projeto?", _psi()),
        ), "Verificações semanais de válvulas de controle e dispositivos de fluxo reverso"),
        _cadence_section("monthly", "Inspeções Mensais", "mensal", (
            FormField("monthly_section_header_water_supply", SECTION_HEADER, "Abastecimento de Água"),
            _tristate("monthly_control_valves_open", "Válvulas de controle abertas e em condições de serviço?"),
            _tristate("monthly_valve_room_conditions",
                      "Casa de válvulas aquecida adequadamente (mín. 40°F/4°C)?", _temperature()),
            _tristate("monthly_gauges_condition", "Manômetros em boas condições de operação?"),
        ), "Inspeções mensais de válvulas e componentes do sistema"),
        _cadence_section("quarterly", "Inspeções Trimestrais", "trimestral", (
            _tristate("quarterly_water_flow_alarms", "Dispositivos de alarme de fluxo de água sem danos físicos?"),
            _tristate("quarterly_alarm_check_valve", "Válvula de retenção de alarme em boas condições?"),
            _tristate("quarterly_fire_dept_connections",
                      "Conexões do corpo de bombeiros visíveis, acessíveis e com tampas?"),
        )),
        _cadence_section("annual", "Inspeções Anuais", "anual", (
            _tristate("annual_sprinklers_condition", "Sprinklers livres de corrosão, pintura ou danos?"),
            _tristate("annual_spare_sprinklers", "Estoque de sprinklers sobressalentes e chave adequados?"),
            _tristate("annual_piping_condition", "Tubulação e conexões em boas condições, sem vazamentos?"),
            _tristate("annual_hydraulic_plate", "Placa de dados hidráulicos fixada e legível?"),
        )),
        FormSection("tests", "Testes", (
            _tristate("test_main_drain", "Teste de dreno principal realizado e dentro do esperado?", _psi()),
            _tristate("test_control_valves", "Válvulas de controle operadas em todo o curso?"),
            _tristate("test_antifreeze", "Solução anticongelante testada?"),
        ), required_frequencies=TEST_FREQUENCIES, conditional_display=True),
        _observations_section(),
        _signatures_section(),
    ),
)

WET_SPRINKLER_MILESTONES = (
    Milestone("general-info", "Informações gerais",
              fields_filled("propertyName", "propertyAddress", "inspector", "date")),
    Milestone("frequency", "Frequência selecionada", frequency_selected()),
    Milestone("daily", "Inspeções diárias", section_completed("daily")),
    Milestone("weekly", "Inspeções semanais", section_completed("weekly")),
    Milestone("monthly", "Inspeções mensais", section_completed("monthly")),
    Milestone("quarterly", "Inspeções trimestrais", section_completed("quarterly")),
    Milestone("annual", "Inspeções anuais", section_completed("annual")),
    Milestone("tests", "Testes", section_completed("tests")),
    Milestone("signatures", "Assinaturas finais", signatures_captured()),
)

# ---------------------------------------------------------------------------
# Foam-water sprinkler system
# ---------------------------------------------------------------------------

FOAM_WATER_SCHEMA = FormSchema(
    form_id="foam-water",
    title="Sistema de Sprinklers de Espuma-Água",
    description="Sistemas que combinam água com agente formador de espuma para proteção especial",
    version="1.0.0",
    estimated_time="20-25 min",
    sections=(
        FormSection("general", "Informações Gerais", (
            _text("facilityName", "Nome da Instalação", required=True),
            _text("systemLocation", "Localização do Sistema", required=True,
                  placeholder="Ex: Hangar de Aeronaves, Área de Combustíveis"),
            FormField("inspectionDate", DATE_INPUT, "Data da Inspeção", required=True),
            _text("inspectorName", "Nome do Inspetor", required=True),
        )),
        FormSection("foam-system", "Sistema de Concentrado de Espuma", (
            FormField("foamConcentrateType", SINGLE_SELECT, "Tipo de Concentrado de Espuma", options=(
                FieldOption("afff", "AFFF (Aqueous Film Forming Foam)"),
                FieldOption("ar-afff", "AR-AFFF (Alcohol Resistant)"),
                FieldOption("protein", "Protein Foam"),
                FieldOption("fluoroprotein", "Fluoroprotein Foam"),
                FieldOption("high-expansion", "High Expansion Foam"),
            )),
            FormField("foamConcentrateLevel", NUMERIC_INPUT, "Nível do Concentrado (%)",
                      help_text="Nível no tanque de armazenamento", unit="%"),
            FormField("foamConcentrateCondition", SINGLE_SELECT, "Condição do Concentrado", options=(
                FieldOption("excellent", "Excelente"),
                FieldOption("good", "Boa"),
                FieldOption("fair", "Regular"),
                FieldOption("poor", "Ruim"),
                FieldOption("expired", "Vencido"),
            )),
        )),
        _observations_section(),
        FormSection("status", "Status e Conclusões", (
            FormField("systemOperational", BOOLEAN_CHECKBOX, "Sistema Operacional"),
            FormField("inspectionPassed", BOOLEAN_CHECKBOX, "Inspeção Aprovada"),
        )),
        _signatures_section(),
    ),
)

FOAM_WATER_MILESTONES = (
    Milestone("general-info", "Informações gerais",
              fields_filled("facilityName", "systemLocation", "inspectorName")),
    Milestone("foam-system", "Concentrado de espuma", section_completed("foam-system")),
    Milestone("status", "Status do sistema", section_completed("status")),
    Milestone("signatures", "Assinaturas finais", signatures_captured()),
)

# ---------------------------------------------------------------------------
# Fire pumps
# ---------------------------------------------------------------------------

WEEKLY_PUMP_SCHEMA = FormSchema(
    form_id="weekly-pump",
    title="Inspeção Semanal de Bomba",
    description="Inspeção semanal de sistemas de bomba conforme NFPA 25",
    version="1.0.0",
    estimated_time="10-15 min",
    sections=(
        FormSection("general", "Informações Gerais", _general_fields(
            "propertyName", "propertyAddress", "inspector", "date",
        )),
        FormSection("pumphouse", "Casa de Bombas", (
            _tristate("pumphouse_temperature", "Casa de bomba adequadamente aquecida (mín. 40°F/4°C)?",
                      _temperature()),
            _tristate("pumphouse_ventilation", "Ventilação adequada presente?"),
        )),
        FormSection("pumpsystems", "Sistemas de Bomba", (
            _tristate("pump_condition", "Bomba livre de danos físicos ou vazamentos incomuns?"),
            _tristate("suction_pressure", "Pressão de sucção normal?", _psi()),
        )),
        _observations_section(),
        _signatures_section(),
    ),
)

WEEKLY_PUMP_MILESTONES = (
    Milestone("general-info", "Informações gerais",
              fields_filled("propertyName", "propertyAddress", "inspector", "date")),
    Milestone("pumphouse", "Casa de bombas", section_completed("pumphouse")),
    Milestone("pumpsystems", "Sistemas de bomba", section_completed("pumpsystems")),
    Milestone("signatures", "Assinaturas finais", signatures_captured()),
)

MONTHLY_PUMP_SCHEMA = FormSchema(
    form_id="monthly-pump",
    title="Inspeção Mensal de Bomba de Incêndio",
    description="Teste sem fluxo e inspeção mensal de bombas elétricas conforme NFPA 25",
    version="1.0.0",
    estimated_time="15-20 min",
    sections=(
        FormSection("general", "Informações Gerais", _general_fields(
            "propertyName", "propertyAddress", "inspector", "date",
        )),
        FormSection("electrical-pump", "Bomba Elétrica", (
            _tristate("electric_no_flow_test", "Teste sem fluxo - operar por 10 minutos"),
            _tristate("electric_start_pressure", "Registrar a pressão de partida da bomba", _psi()),
            _tristate("electric_suction_pressure", "Registrar a pressão de sucção do manômetro", _psi()),
            _tristate("electric_discharge_pressure", "Registrar a pressão de descarga do manômetro", _psi()),
            _tristate("electric_noise_vibration", "Verificar ruído ou vibração incomum"),
            _tristate("electric_circulation_relief", "A válvula de alívio de circulação funciona corretamente"),
        )),
        FormSection("electrical-system", "Sistema Elétrico", (
            _tristate("electrical_isolation_switch",
                      "Exercitar o interruptor de isolamento e o disjuntor (Alternativa ITM A.8.1.1.2)"),
            _tristate("electrical_breakers_fuses", "Inspecionar disjuntores ou fusíveis (Alternativa ITM A.8.1.1.2)"),
        )),
        FormSection("battery-system", "Sistema de Bateria", (
            _tristate("battery_exterior_condition", "Inspecionar o exterior da caixa, limpo e seco"),
            _tristate("battery_charger_rate", "Inspecionar o carregador e a taxa de carga"),
        )),
        _signatures_section(),
    ),
)

MONTHLY_PUMP_MILESTONES = (
    Milestone("general-info", "Informações gerais",
              all_of(fields_filled("propertyName", "date"), any_field_filled("inspector"))),
    Milestone("electrical-pump", "Bomba elétrica", section_completed("electrical-pump")),
    Milestone("electrical-system", "Sistema elétrico", section_completed("electrical-system")),
    Milestone("battery-system", "Sistema de bateria", section_completed("battery-system")),
    Milestone("signatures", "Assinaturas finais", signatures_captured()),
)

# ---------------------------------------------------------------------------
# Water storage tanks
# ---------------------------------------------------------------------------

TANK_FREQUENCIES = tuple(o for o in FREQUENCIES if o.value in {"trimestral", "anual", "5anos", "testes"})

WATER_TANK_SCHEMA = FormSchema(
    form_id="water-tank",
    title="Tanques de Armazenamento de Água",
    description="Inspeção de tanques de armazenamento de água para proteção contra incêndio",
    version="1.0.0",
    frequencies=TANK_FREQUENCIES,
    estimated_time="20-30 min",
    sections=(
        FormSection("general", "Informações Gerais", (
            _text("propertyName", "Nome da Propriedade", required=True),
            _text("address", "Endereço", required=True),
            _text("phone", "Telefone da Propriedade"),
            _text("inspector", "Inspetor", required=True),
            _text("contractNumber", "Nº do Contrato"),
            FormField("date", DATE_INPUT, "Data", required=True),
            _frequency_field(TANK_FREQUENCIES),
            _text("tankType", "Tipo de Tanque"),
        )),
        _cadence_section("quarterly", "Inspeções Trimestrais", "trimestral", (
            _tristate("quarterly_external_condition",
                      "O exterior do tanque, estrutura de suporte, aberturas, fundação e passarelas "
                      "ou escadas estão em boas condições?"),
            _tristate("quarterly_area_clear_combustible",
                      "A área está livre de armazenamento combustível, lixo, detritos, mato ou material "
                      "que possa apresentar risco de incêndio?"),
            _tristate("quarterly_ice_free", "O tanque e o suporte estão livres de acúmulo de gelo?"),
        )),
        _cadence_section("annual", "Inspeções Anuais", "anual", (
            _tristate("annual_hoops_bands_condition", "Aros e cintas estão em boas condições?"),
            _tristate("annual_painted_surfaces", "Superfícies pintadas estão em boas condições?"),
            _tristate("annual_expansion_joints", "Juntas de expansão não estão rachadas ou vazando?"),
        )),
        _cadence_section("internal", "Inspeções Internas", "5anos", (
            _tristate("internal_sludge_removed", "O lodo foi removido para avaliação subaquática?"),
            _tristate("internal_surfaces_condition",
                      "As superfícies internas estão livres de corrosão, lascamento ou outras formas "
                      "de deterioração?"),
            _tristate("internal_coating_intact", "O revestimento interno está intacto?"),
        )),
        FormSection("tests", "Testes de Válvulas", (
            _tristate("test_level_indicators", "Indicadores de nível testados e precisos?"),
            _tristate("test_high_low_alarms", "Alarmes de nível alto e baixo de água testados?"),
        ), required_frequencies=TEST_FREQUENCIES, conditional_display=True),
        _signatures_section(),
    ),
)

WATER_TANK_MILESTONES = (
    Milestone("general-info", "Informações gerais",
              fields_filled("propertyName", "address", "inspector", "date")),
    Milestone("frequency", "Frequência selecionada", frequency_selected()),
    Milestone("quarterly", "Inspeções trimestrais", section_completed("quarterly")),
    Milestone("annual", "Inspeções anuais", section_completed("annual")),
    Milestone("internal", "Inspeções internas", section_completed("internal")),
    Milestone("tests", "Testes de válvulas", section_completed("tests")),
    Milestone("signatures", "Assinaturas finais", signatures_captured()),
)

# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------

FORM_DEFINITIONS: tuple[FormDefinition, ...] = (
    FormDefinition(WET_SPRINKLER_SCHEMA, WET_SPRINKLER_MILESTONES),
    FormDefinition(FOAM_WATER_SCHEMA, FOAM_WATER_MILESTONES),
    FormDefinition(WEEKLY_PUMP_SCHEMA, WEEKLY_PUMP_MILESTONES),
    FormDefinition(MONTHLY_PUMP_SCHEMA, MONTHLY_PUMP_MILESTONES),
    FormDefinition(WATER_TANK_SCHEMA, WATER_TANK_MILESTONES),
)


def build_default_registry() -> SchemaRegistry:
    """Build the registry of every supported form. Call once at startup."""
    return SchemaRegistry(FORM_DEFINITIONS, known_frequencies=FREQUENCY_VALUES)
