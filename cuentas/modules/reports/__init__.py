"""
Módulo de Reportes de cuenta corriente

- Reporte de deudores: clientes activos con saldo distinto de cero
- Estado de cuenta: movimientos en un rango de fechas con debe/haber/saldo
"""
