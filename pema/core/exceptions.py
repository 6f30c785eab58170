class BaseErroCore(Exception):
    """Classe base para todas as exceções da Camada Core."""
    pass

class DadosInvalidosError(BaseErroCore):
    """Erro levantado quando dados inválidos são fornecidos."""
    def __init__(self, message="Os dados fornecidos são inválidos."):
        self.message = message
        super().__init__(self.message)

# ===============================================
# ERROS DE FLUXO DE VENDA (CARRINHO E CHECKOUT)
# ===============================================

class CarrinhoVazioError(BaseErroCore):
    """Erro levantado ao tentar fazer checkout com carrinho vazio."""
    def __init__(self, message="Adicione itens ao pedido antes de finalizar."):
        self.message = message
        super().__init__(self.message)

class LocalNaoSelecionadoError(BaseErroCore):
    """Erro levantado ao confirmar uma venda sem o local obrigatório."""
    def __init__(self, message="Por favor, selecione um local para a venda."):
        self.message = message
        super().__init__(self.message)

class PagamentoInsuficienteError(BaseErroCore):
    """Erro levantado quando o valor pago em dinheiro é menor que o total."""
    def __init__(self, total, valor_recebido, message=None):
        self.total = total
        self.valor_recebido = valor_recebido
        if message is None:
            message = (f"Valor pago ({valor_recebido}) menor que o total do pedido ({total}). "
                       f"Insira um valor igual ou maior que o total.")
        self.message = message
        super().__init__(self.message)

class TransicaoInvalidaError(BaseErroCore):
    """Erro levantado quando a operação não é permitida no estado atual do checkout."""
    def __init__(self, estado, operacao, message=None):
        self.estado = estado
        self.operacao = operacao
        if message is None:
            message = f"Operação '{operacao}' não permitida no estado '{estado.value}'."
        self.message = message
        super().__init__(self.message)

class DataVendaNaoPermitidaError(BaseErroCore):
    """Erro levantado quando um papel sem permissão tenta alterar a data da venda."""
    def __init__(self, message="Seu perfil não permite alterar a data da venda."):
        self.message = message
        super().__init__(self.message)

# ===============================================
# AVISOS (NÃO BLOQUEANTES)
# ===============================================

class ChavePixNaoConfigurada(UserWarning):
    """Aviso exibido quando o usuário não tem chave PIX no perfil. Não impede a venda."""
    def __init__(self, message="Nenhuma chave PIX está configurada no perfil do usuário."):
        self.message = message
        super().__init__(self.message)

# ===============================================
# ERROS DE COLABORADORES EXTERNOS
# ===============================================

class SugestaoIndisponivelError(BaseErroCore):
    """Erro levantado quando o serviço de recomendação falha ou responde algo inválido."""
    def __init__(self, message="Não foi possível obter uma sugestão."):
        self.message = message
        super().__init__(self.message)

class PersistenciaError(BaseErroCore):
    """Erro levantado quando um documento armazenado não pode ser lido."""
    def __init__(self, message="Falha ao ler os dados armazenados."):
        self.message = message
        super().__init__(self.message)
