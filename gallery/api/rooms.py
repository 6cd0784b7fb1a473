from flask import Blueprint, jsonify, request, current_app
from gallery import rooms
from gallery.messages import InvalidOptionsError


rooms_api = Blueprint('rooms', __name__)


@rooms_api.route('', methods=['POST'])
def create_room():
    """
    Creates a new room. The JSON body holds the room options
    (``minReqPlayers``, ``numberOfTargetRows``).
    """
    options = request.get_json(silent=True) or {}
    if not isinstance(options, dict):
        return jsonify({'error': 'Room options must be a JSON object'}), 400
    try:
        room = rooms.create_room(options)
    except InvalidOptionsError as exc:
        return jsonify({'error': str(exc)}), 400
    current_app.logger.info(f"[create] room={room.room_id} options={room.options.to_dict()}")
    return jsonify({
        'message': 'New room created!',
        'room_id': room.room_id,
        'options': room.options.to_dict(),
    }), 201


@rooms_api.route('', methods=['GET'])
def list_rooms():
    return jsonify(rooms.list_rooms())


@rooms_api.route('/<string:room_id>/state', methods=['GET'])
def get_room_state(room_id):
    room = rooms.find_room(room_id)
    if room is None:
        return jsonify({'error': 'Room not found'}), 404
    return jsonify(room.call(None, room.to_dict))


@rooms_api.route('/<string:room_id>', methods=['DELETE'])
def dispose_room(room_id):
    if not rooms.dispose_room(room_id):
        return jsonify({'error': 'Room not found'}), 404
    return jsonify({'message': f'Room {room_id.upper()} disposed'}), 200
