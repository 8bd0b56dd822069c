"""
Orders API: HTTP-интерфейс к сервису заказов.
"""
