# pyright: reportMissingImports=false, reportCallIssue=false, reportGeneralTypeIssues=false
"""MCP server factory for facility_history (requires the ``mcp`` extra).

Usage::

    from facility_history import FacilityHistory
    from facility_history.ext.mcp_use.server import create_server

    history = FacilityHistory.from_config({...})
    server = create_server(history)
    server.run(transport="stdio")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from facility_history import tools
from facility_history.facade import FacilityHistory

if TYPE_CHECKING:
    from mcp_use.server import MCPServer


def _payload(result: tools.ToolResult) -> dict[str, Any]:
    out: dict[str, Any] = {"text": result.text, "is_error": result.is_error}
    if result.artifact is not None:
        out["artifact"] = {
            "file_name": result.artifact.file_name,
            "mime_type": result.artifact.content_type,
            "uri": result.artifact.uri,
            "expires_at": result.artifact.expires_at.isoformat(),
        }
    return out


def create_server(
    history: FacilityHistory,
    *,
    name: str = "facility-history",
    version: str = "0.1.0",
) -> MCPServer:
    """Build an MCPServer with the cleaning-history tools registered.

    Requires the ``mcp`` extra (``pip install facility-history[mcp]``).

    Args:
        history: Initialised facade every tool runs against.
        name: Server name exposed to MCP clients.
        version: Server version exposed to MCP clients.
    """
    try:
        from mcp.types import ToolAnnotations
        from mcp_use.server import MCPServer as _MCPServer
    except ImportError:
        raise ImportError(
            "mcp-use is required for MCP server support. "
            "Install it with: pip install facility-history[mcp]"
        ) from None

    server = _MCPServer(
        name=name,
        version=version,
        instructions=(
            "Histórico de limpeza das salas. Use listar_salas para conhecer os "
            "nomes, limpezas_feitas para consultar registros recentes e "
            "exportar_registros para gerar uma planilha. Datas no formato "
            "DD/MM/AAAA."
        ),
    )
    read_only = ToolAnnotations(readOnlyHint=True, idempotentHint=True)

    @server.tool(name="listar_salas", title="Listar todas as salas", annotations=read_only)
    async def listar_salas() -> dict:
        """Retorna todas as salas cadastradas, agrupadas por categoria."""
        return _payload(await tools.list_facilities(history))

    @server.tool(name="resumo_geral", title="Resumo das salas", annotations=read_only)
    async def resumo_geral() -> dict:
        """Estatísticas resumidas sobre as limpezas de hoje."""
        return _payload(await tools.today_summary(history))

    @server.tool(
        name="limpezas_feitas",
        title="Registros completos por sala",
        annotations=read_only,
    )
    async def limpezas_feitas(
        sala: str,
        data_inicio: str | None = None,
        data_fim: str | None = None,
    ) -> dict:
        """Exibe os registros de uma sala em uma única tabela.

        Sem datas, mostra as últimas 12 horas.  ``sala`` é o nome da sala
        (ex: SALA 28 (BANHEIRO)); datas no formato DD/MM/AAAA.
        """
        return _payload(
            await tools.facility_history(history, sala, data_inicio, data_fim)
        )

    @server.tool(
        name="buscar_fotos",
        title="Buscar Fotos da Limpeza",
        annotations=read_only,
    )
    async def buscar_fotos(
        sala: str,
        data_inicio: str | None = None,
        data_fim: str | None = None,
    ) -> dict:
        """Busca as fotos de entrada e saída da limpeza mais recente de uma sala."""
        return _payload(
            await tools.cleaning_photos(history, sala, data_inicio, data_fim)
        )

    @server.tool(
        name="exportar_registros",
        title="Exportar Registros de Limpeza",
        annotations=ToolAnnotations(readOnlyHint=False, idempotentHint=False),
    )
    async def exportar_registros(
        sala: str | None = None,
        data_inicio: str | None = None,
        data_fim: str | None = None,
        dias_anteriores: int | None = None,
    ) -> dict:
        """Exporta os registros de limpeza para um arquivo Excel.

        Sem sala, exporta todas.  ``dias_anteriores`` tem precedência
        sobre ``data_inicio``; sem datas, exporta os últimos 7 dias.  O
        arquivo fica disponível por 5 minutos.
        """
        return _payload(
            await tools.export_history(
                history, sala, data_inicio, data_fim, dias_anteriores
            )
        )

    return server
