import asyncio
import logging
from typing import List, Optional

import requests
from django.conf import settings

from pema.core.entities import Sugestao
from pema.core.exceptions import DadosInvalidosError, SugestaoIndisponivelError
from pema.core.ports import IRecomendador

logger = logging.getLogger(__name__)


# ====================================================================
# GATEWAYS: Implementações concretas que se comunicam com APIs externas.
# ====================================================================

class RecomendacaoHttpGateway(IRecomendador):
    """
    Gateway para o serviço de recomendação (modelo externo que sugere o próximo
    produto). Implementa o protocolo IRecomendador do Core. A chamada HTTP é
    bloqueante e roda em uma thread para não travar o loop do terminal.
    """

    def __init__(self, api_url: Optional[str] = None, api_key: Optional[str] = None, timeout: Optional[float] = None):
        self.api_url = api_url or settings.RECOMENDACAO_API_URL
        self.api_key = api_key if api_key is not None else settings.RECOMENDACAO_API_KEY
        self.timeout = timeout if timeout is not None else settings.RECOMENDACAO_TIMEOUT

        self.headers = {"Content-Type": "application/json"}
        if self.api_key:
            self.headers["Authorization"] = f"Bearer {self.api_key}"
        else:
            logger.warning("RECOMENDACAO_API_KEY não configurada; chamadas seguirão sem autenticação.")

    def sugerir(self, pedido_atual: List[str], historico: List[str]) -> Sugestao:
        """Chamada síncrona ao serviço. Levanta SugestaoIndisponivelError em qualquer falha."""
        if not pedido_atual:
            raise SugestaoIndisponivelError("Pedido vazio: nada a sugerir.")

        payload = {
            "pedido_atual": list(pedido_atual),
            "historico": list(historico),
        }
        try:
            response = requests.post(self.api_url, json=payload, headers=self.headers, timeout=self.timeout)
            response.raise_for_status()
            data = response.json()
        except requests.exceptions.RequestException as e:
            raise SugestaoIndisponivelError(f"Erro de conexão com o serviço de recomendação: {e}")
        except ValueError as e:
            raise SugestaoIndisponivelError(f"Resposta inválida do serviço de recomendação: {e}")

        return self._para_sugestao(data)

    async def sugerir_proximo(self, pedido_atual: List[str], historico: List[str]) -> Sugestao:
        return await asyncio.to_thread(self.sugerir, pedido_atual, historico)

    @staticmethod
    def _para_sugestao(data) -> Sugestao:
        if not isinstance(data, dict):
            raise SugestaoIndisponivelError("Resposta do serviço de recomendação não é um objeto.")

        # Aceita também as chaves em inglês (suggestedProductCode, confidence).
        codigo = data.get("codigo_produto", data.get("suggestedProductCode"))
        confianca = data.get("confianca", data.get("confidence"))
        try:
            return Sugestao(codigo_produto=codigo, confianca=float(confianca))
        except (TypeError, ValueError, DadosInvalidosError) as e:
            raise SugestaoIndisponivelError(f"Sugestão malformada: {e}")
